"""Trip and seat database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from app.models.booking import Booking


class Route(Base):
    """Origin/destination pair a trip runs on."""

    __tablename__ = "routes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    origin: Mapped[str] = mapped_column(String(100), nullable=False)
    destination: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=func.now())

    # Relationships
    trips: Mapped[list["Trip"]] = relationship("Trip", back_populates="route")


class Trip(Base):
    """One scheduled departure."""

    __tablename__ = "trips"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    route_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("routes.id"), nullable=False, index=True
    )

    # Schedule
    departure_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    arrival_time: Mapped[datetime | None] = mapped_column(UTCDateTime)

    # Vehicle
    max_passengers: Mapped[int] = mapped_column(Integer, nullable=False)
    seat_layout: Mapped[str] = mapped_column(String(20), default="front_row")  # front_row, grid4

    # Pricing (minor units per seat)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN")

    status: Mapped[str] = mapped_column(
        String(20), default="ACTIVE", index=True
    )  # ACTIVE, INACTIVE, CANCELLED, COMPLETED

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    route: Mapped["Route"] = relationship("Route", back_populates="trips")
    seats: Mapped[list["Seat"]] = relationship(
        "Seat", back_populates="trip", cascade="all, delete-orphan", order_by="Seat.position"
    )
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="trip")


class Seat(Base):
    """A declared seat on a trip. Occupancy is derived from bookings."""

    __tablename__ = "seats"
    __table_args__ = (UniqueConstraint("trip_id", "label", name="uq_seats_trip_label"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    label: Mapped[str] = mapped_column(String(8), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    trip: Mapped["Trip"] = relationship("Trip", back_populates="seats")
