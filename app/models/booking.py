"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, JSONType, UTCDateTime, utcnow

if TYPE_CHECKING:
    from app.models.payment import Payment
    from app.models.trip import Trip


class Booking(Base):
    """Seat reservation on a trip."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_reference: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, index=True
    )  # BK-YYMMDDHHMMSS-XXXX
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trips.id"), nullable=False, index=True
    )
    user_id: Mapped[str | None] = mapped_column(String(64), index=True)  # JWT subject, if any

    # Seats in the order requested
    seat_numbers: Mapped[list[str]] = mapped_column(JSONType, nullable=False)

    # Passengers
    passenger_details: Mapped[list[dict]] = mapped_column(JSONType, default=list)
    contact_info: Mapped[dict | None] = mapped_column(JSONType)

    # Pricing (minor units)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN")

    status: Mapped[str] = mapped_column(
        String(20), default="PENDING", index=True
    )  # PENDING, CONFIRMED, CANCELLED, COMPLETED
    confirmed_payment_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Hold deadline while PENDING
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, index=True)

    # Cancellation
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    refund_amount: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=func.now())
    confirmed_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    trip: Mapped["Trip"] = relationship("Trip", back_populates="bookings")
    seat_claims: Mapped[list["BookingSeat"]] = relationship(
        "BookingSeat", back_populates="booking", cascade="all, delete-orphan"
    )
    payments: Mapped[list["Payment"]] = relationship("Payment", back_populates="booking")

    @property
    def seat_count(self) -> int:
        return len(self.seat_numbers or [])


class BookingSeat(Base):
    """Claim of one seat label by one booking.

    While `released_at` is NULL the claim is active, and the partial unique
    index guarantees a label is actively claimed by at most one booking.
    """

    __tablename__ = "booking_seats"
    __table_args__ = (
        Index(
            "uq_booking_seats_active_label",
            "trip_id",
            "seat_label",
            unique=True,
            postgresql_where=text("released_at IS NULL"),
            sqlite_where=text("released_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    trip_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("trips.id"), nullable=False)
    seat_label: Mapped[str] = mapped_column(String(8), nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=func.now())
    released_at: Mapped[datetime | None] = mapped_column(UTCDateTime)

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="seat_claims")
