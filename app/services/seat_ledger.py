"""Seat ledger: which seats a trip has and which are free.

Occupancy is never stored as a flag or counter. It is derived from active
`BookingSeat` claims of PENDING/CONFIRMED bookings, and write-time
exclusivity comes from the partial unique index on
(trip_id, seat_label) WHERE released_at IS NULL.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    CapacityExceeded,
    DuplicateInitialization,
    InvalidSeat,
    SeatConflict,
    ValidationError,
)
from app.domain.booking_state import ACTIVE_BOOKING_STATUSES
from app.domain.seat_layout import generate_seat_labels, seat_sort_key
from app.models.booking import Booking, BookingSeat
from app.models.trip import Seat, Trip

logger = logging.getLogger(__name__)


class SeatLedger:
    """Authoritative source of seat identities and occupancy per trip."""

    async def initialize_seats(
        self,
        db: AsyncSession,
        trip: Trip,
        capacity: int | None = None,
        layout: str | None = None,
    ) -> list[Seat]:
        """Declare the trip's seats. Allowed exactly once per trip.

        Raises:
            DuplicateInitialization: Seats already exist for the trip
        """
        existing = await db.execute(select(func.count(Seat.id)).where(Seat.trip_id == trip.id))
        if existing.scalar_one() > 0:
            raise DuplicateInitialization(str(trip.id))

        labels = generate_seat_labels(capacity or trip.max_passengers, layout or trip.seat_layout)
        seats = [
            Seat(trip_id=trip.id, label=label, position=position)
            for position, label in enumerate(labels)
        ]

        try:
            async with db.begin_nested():
                db.add_all(seats)
                await db.flush()
        except IntegrityError:
            raise DuplicateInitialization(str(trip.id))

        logger.info(f"Initialized {len(seats)} seats for trip {trip.id}: {', '.join(labels)}")
        return seats

    async def declared_seats(self, db: AsyncSession, trip_id) -> list[str]:
        result = await db.execute(
            select(Seat.label).where(Seat.trip_id == trip_id).order_by(Seat.position)
        )
        return list(result.scalars().all())

    async def occupied_seats(self, db: AsyncSession, trip_id) -> list[str]:
        """Labels attached to PENDING or CONFIRMED bookings on the trip."""
        result = await db.execute(
            select(BookingSeat.seat_label)
            .join(Booking, Booking.id == BookingSeat.booking_id)
            .where(
                BookingSeat.trip_id == trip_id,
                BookingSeat.released_at.is_(None),
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        return sorted(set(result.scalars().all()), key=seat_sort_key)

    async def available_seats(self, db: AsyncSession, trip_id) -> list[str]:
        declared = await self.declared_seats(db, trip_id)
        occupied = set(await self.occupied_seats(db, trip_id))
        return [label for label in declared if label not in occupied]

    async def reserve(
        self,
        db: AsyncSession,
        booking: Booking,
        labels: list[str],
    ) -> list[BookingSeat]:
        """Attach seat labels to a flushed booking, atomically.

        The pre-checks give precise errors; the unique index decides races.

        Raises:
            ValidationError: Empty or repeated labels
            InvalidSeat: Label not declared for the trip
            CapacityExceeded: No seats remain on the trip
            SeatConflict: Label held by another active booking
        """
        if not labels:
            raise ValidationError("At least one seat must be selected")
        if len(set(labels)) != len(labels):
            raise ValidationError("Each seat can only be selected once per booking")

        declared = await self.declared_seats(db, booking.trip_id)
        unknown = [label for label in labels if label not in declared]
        if unknown:
            raise InvalidSeat(unknown)

        occupied = set(await self.occupied_seats(db, booking.trip_id))
        if len(occupied) >= len(declared):
            raise CapacityExceeded(len(labels), 0)

        taken = [label for label in labels if label in occupied]
        if taken:
            raise SeatConflict(taken)

        claims = [
            BookingSeat(booking_id=booking.id, trip_id=booking.trip_id, seat_label=label)
            for label in labels
        ]
        try:
            async with db.begin_nested():
                db.add_all(claims)
                await db.flush()
        except IntegrityError:
            logger.info(f"Seat race lost for trip {booking.trip_id}: {labels}")
            raise SeatConflict(labels)

        logger.info(f"Reserved seats {labels} on trip {booking.trip_id} for {booking.booking_reference}")
        return claims

    async def release(self, db: AsyncSession, booking: Booking, now: datetime | None = None) -> int:
        """Free the booking's seats. Idempotent: released claims stay released."""
        result = await db.execute(
            update(BookingSeat)
            .where(
                BookingSeat.booking_id == booking.id,
                BookingSeat.released_at.is_(None),
            )
            .values(released_at=now or datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        released = result.rowcount or 0
        if released:
            logger.info(f"Released {released} seats of {booking.booking_reference}")
        return released


seat_ledger = SeatLedger()
