"""Booking lifecycle: create, confirm, cancel, complete, expire."""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AmountMismatch,
    ConflictError,
    InvariantViolation,
    NotFoundError,
    TripNotBookable,
    ValidationError,
)
from app.domain.booking_state import BookingStatus, assert_booking_transition
from app.domain.cancellation_policy import calculate_refund_amount
from app.domain.trip_state import TripStatus
from app.models.booking import Booking
from app.models.trip import Trip
from app.services.audit_service import audit_service
from app.services.seat_ledger import seat_ledger
from app.utils.booking_number import generate_booking_reference

logger = logging.getLogger(__name__)


class BookingService:
    """Booking state machine. The only writer of booking rows."""

    async def get_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        for_update: bool = False,
    ) -> Booking:
        query = select(Booking).where(Booking.id == booking_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_by_reference(self, db: AsyncSession, reference: str) -> Booking:
        result = await db.execute(select(Booking).where(Booking.booking_reference == reference))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", reference)
        return booking

    async def _get_trip(self, db: AsyncSession, trip_id: UUID) -> Trip:
        result = await db.execute(select(Trip).where(Trip.id == trip_id))
        trip = result.scalar_one_or_none()
        if not trip:
            raise NotFoundError("Trip", str(trip_id))
        return trip

    async def create_booking(
        self,
        db: AsyncSession,
        trip_id: UUID,
        seat_labels: list[str],
        passenger_details: list[dict] | None = None,
        contact_info: dict | None = None,
        total_amount: int | None = None,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Hold seats and create a PENDING booking in one unit of work.

        Raises:
            ValidationError: Bad seat selection or passenger list
            NotFoundError: Unknown trip
            TripNotBookable: Trip inactive or departed
            AmountMismatch: Supplied total differs from the trip price
            InvalidSeat, CapacityExceeded, SeatConflict: From the seat ledger
        """
        now = now or datetime.now(UTC)
        labels = list(seat_labels)

        if not labels:
            raise ValidationError("At least one seat must be selected")
        if len(labels) > settings.max_seats_per_booking:
            raise ValidationError(
                f"A booking can hold at most {settings.max_seats_per_booking} seats"
            )
        if passenger_details and len(passenger_details) != len(labels):
            raise ValidationError("Passenger details must be given for each selected seat")

        trip = await self._get_trip(db, trip_id)
        if trip.status != TripStatus.ACTIVE:
            raise TripNotBookable(f"This trip is {trip.status.lower()} and not open for booking")
        if trip.departure_time <= now:
            raise TripNotBookable("This trip has already departed")

        expected_total = trip.price * len(labels)
        if total_amount is not None and total_amount != expected_total:
            raise AmountMismatch(expected_total, total_amount)

        reference = await generate_booking_reference(db)
        booking = Booking(
            booking_reference=reference,
            trip_id=trip.id,
            user_id=user_id,
            seat_numbers=labels,
            passenger_details=passenger_details or [],
            contact_info=contact_info,
            total_amount=expected_total,
            currency=trip.currency,
            status=BookingStatus.PENDING.value,
            expires_at=now + timedelta(minutes=settings.booking_hold_minutes),
        )

        # Booking row and seat claims commit together or not at all
        try:
            async with db.begin_nested():
                db.add(booking)
                await db.flush()
                await seat_ledger.reserve(db, booking, labels)
        except IntegrityError:
            raise ConflictError("Booking reference collision, please retry")

        await audit_service.log_booking_transition(
            db, booking.id, None, BookingStatus.PENDING.value, actor=user_id,
            seats=labels, total_amount=expected_total,
        )
        logger.info(
            f"Booking {reference} created on trip {trip.id} for seats {labels}, "
            f"hold until {booking.expires_at.isoformat()}"
        )
        return booking

    async def confirm(
        self,
        db: AsyncSession,
        booking_id: UUID,
        payment_id: UUID,
        actor: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Confirm a PENDING booking against a payment.

        Raises:
            InvariantViolation: Already confirmed by a different payment
            InvalidBookingTransition: Booking is cancelled or completed
        """
        booking = await self.get_booking(db, booking_id, for_update=True)

        if booking.status == BookingStatus.CONFIRMED:
            if booking.confirmed_payment_id == payment_id:
                return booking
            raise InvariantViolation(
                f"Booking {booking.booking_reference} is already confirmed by payment "
                f"{booking.confirmed_payment_id}; refusing payment {payment_id}"
            )

        assert_booking_transition(booking.status, BookingStatus.CONFIRMED)

        booking.status = BookingStatus.CONFIRMED.value
        booking.confirmed_payment_id = payment_id
        booking.confirmed_at = now or datetime.now(UTC)
        booking.expires_at = None

        await audit_service.log_booking_transition(
            db, booking.id, BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value,
            actor=actor, payment_id=str(payment_id),
        )
        logger.info(f"Booking {booking.booking_reference} confirmed by payment {payment_id}")
        return booking

    async def cancel(
        self,
        db: AsyncSession,
        booking_id: UUID,
        reason: str,
        actor: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Cancel a PENDING or CONFIRMED booking and release its seats.

        Cancelling an already cancelled booking is a no-op. Confirmed bookings
        get a refund amount from the cancellation tiers and cannot be
        cancelled once the trip has departed.
        """
        now = now or datetime.now(UTC)
        booking = await self.get_booking(db, booking_id, for_update=True)

        if booking.status == BookingStatus.CANCELLED:
            return booking

        assert_booking_transition(booking.status, BookingStatus.CANCELLED)

        old_status = booking.status
        refund_amount = 0
        if booking.status == BookingStatus.CONFIRMED:
            trip = await self._get_trip(db, booking.trip_id)
            if trip.departure_time <= now:
                raise ValidationError("Bookings cannot be cancelled after departure")
            refund_amount = calculate_refund_amount(trip.departure_time, now, booking.total_amount)

        booking.status = BookingStatus.CANCELLED.value
        booking.cancellation_reason = reason
        booking.cancelled_at = now
        booking.refund_amount = refund_amount
        booking.expires_at = None

        await seat_ledger.release(db, booking, now=now)
        await audit_service.log_booking_transition(
            db, booking.id, old_status, BookingStatus.CANCELLED.value,
            actor=actor, reason=reason, refund_amount=refund_amount,
        )
        logger.info(
            f"Booking {booking.booking_reference} cancelled ({reason}), refund {refund_amount}"
        )
        return booking

    async def complete(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Mark a CONFIRMED booking as travelled (after departure)."""
        now = now or datetime.now(UTC)
        booking = await self.get_booking(db, booking_id, for_update=True)
        assert_booking_transition(booking.status, BookingStatus.COMPLETED)

        trip = await self._get_trip(db, booking.trip_id)
        if trip.departure_time > now:
            raise ValidationError("Bookings can only be completed after departure")

        booking.status = BookingStatus.COMPLETED.value
        booking.completed_at = now

        await audit_service.log_booking_transition(
            db, booking.id, BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value, actor=actor,
        )
        return booking

    async def expire_hold(
        self,
        db: AsyncSession,
        booking_id: UUID,
        now: datetime | None = None,
    ) -> Booking | None:
        """Cancel a booking whose hold ran out, if it is still PENDING and expired."""
        now = now or datetime.now(UTC)
        booking = await self.get_booking(db, booking_id, for_update=True)
        if booking.status != BookingStatus.PENDING:
            return None
        if booking.expires_at is None or booking.expires_at > now:
            return None
        return await self.cancel(db, booking.id, "hold_expired", now=now)

    async def list_bookings(
        self,
        db: AsyncSession,
        status: str | None = None,
        trip_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Booking], int]:
        query = select(Booking)
        count_query = select(func.count(Booking.id))
        if status:
            query = query.where(Booking.status == status)
            count_query = count_query.where(Booking.status == status)
        if trip_id:
            query = query.where(Booking.trip_id == trip_id)
            count_query = count_query.where(Booking.trip_id == trip_id)

        total = (await db.execute(count_query)).scalar_one()
        result = await db.execute(
            query.order_by(Booking.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def booking_stats(self, db: AsyncSession) -> dict:
        """Counts per status plus revenue from confirmed and completed bookings."""
        result = await db.execute(
            select(Booking.status, func.count(Booking.id), func.coalesce(func.sum(Booking.total_amount), 0))
            .group_by(Booking.status)
        )
        stats = {status.value.lower(): 0 for status in BookingStatus}
        revenue = 0
        for status, count, amount in result.all():
            stats[status.lower()] = count
            if status in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED):
                revenue += int(amount)
        stats["total"] = sum(stats.values())
        stats["revenue"] = revenue
        return stats


booking_service = BookingService()

