"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates all initial tables for the trip seat service:
- Routes, trips and declared seats
- Bookings and seat claims
- Payments
- Audit logs and rate-limit records
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== TRIPS ====================
    op.create_table(
        "routes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("origin", sa.String(100), nullable=False),
        sa.Column("destination", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "trips",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("route_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("routes.id"), nullable=False, index=True),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("arrival_time", sa.DateTime(timezone=True)),
        sa.Column("max_passengers", sa.Integer, nullable=False),
        sa.Column("seat_layout", sa.String(20), server_default="front_row"),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), server_default="NGN"),
        sa.Column("status", sa.String(20), server_default="ACTIVE", index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "seats",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("trip_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("label", sa.String(8), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.UniqueConstraint("trip_id", "label", name="uq_seats_trip_label"),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_reference", sa.String(32), unique=True, nullable=False, index=True),
        sa.Column("trip_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("trips.id"), nullable=False, index=True),
        sa.Column("user_id", sa.String(64), index=True),
        sa.Column("seat_numbers", postgresql.JSONB, nullable=False),
        sa.Column("passenger_details", postgresql.JSONB),
        sa.Column("contact_info", postgresql.JSONB),
        sa.Column("total_amount", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), server_default="NGN"),
        sa.Column("status", sa.String(20), server_default="PENDING", index=True),
        sa.Column("confirmed_payment_id", postgresql.UUID(as_uuid=True)),
        sa.Column("expires_at", sa.DateTime(timezone=True), index=True),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("refund_amount", sa.Integer, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "booking_seats",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("trip_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("trips.id"), nullable=False),
        sa.Column("seat_label", sa.String(8), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("released_at", sa.DateTime(timezone=True)),
    )
    # A seat label is actively claimed by at most one booking per trip
    op.create_index(
        "uq_booking_seats_active_label",
        "booking_seats",
        ["trip_id", "seat_label"],
        unique=True,
        postgresql_where=sa.text("released_at IS NULL"),
    )

    # ==================== PAYMENTS ====================
    op.create_table(
        "payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("reference", sa.String(100), unique=True, nullable=False, index=True),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), server_default="NGN"),
        sa.Column("gateway", sa.String(30), nullable=False),
        sa.Column("payer_email", sa.String(255)),
        sa.Column("authorization_url", sa.Text),
        sa.Column("channel", sa.String(30)),
        sa.Column("gateway_response", postgresql.JSONB),
        sa.Column("status", sa.String(20), server_default="PENDING", index=True),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("failure_reason", sa.Text),
        sa.Column("requires_review", sa.Boolean, server_default=sa.false(), index=True),
        sa.Column("review_reason", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "uq_payments_one_paid_per_booking",
        "payments",
        ["booking_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PAID'"),
    )

    # ==================== ADMIN ====================
    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("actor", sa.String(64), index=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("resource_type", sa.String(50), nullable=False, index=True),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True)),
        sa.Column("old_values", postgresql.JSONB),
        sa.Column("new_values", postgresql.JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )

    op.create_table(
        "rate_limits",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )
    op.create_index(
        "ix_rate_limits_identifier_action_created",
        "rate_limits",
        ["identifier", "action", "created_at"],
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("ix_rate_limits_identifier_action_created", table_name="rate_limits")
    op.drop_table("rate_limits")
    op.drop_table("audit_logs")
    op.drop_index("uq_payments_one_paid_per_booking", table_name="payments")
    op.drop_table("payments")
    op.drop_index("uq_booking_seats_active_label", table_name="booking_seats")
    op.drop_table("booking_seats")
    op.drop_table("bookings")
    op.drop_table("seats")
    op.drop_table("trips")
    op.drop_table("routes")
