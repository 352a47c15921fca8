"""Scheduled sweep that resolves PENDING bookings whose seat hold ran out."""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import UpstreamTimeout
from app.domain.booking_state import BookingStatus
from app.domain.payment_state import PaymentStatus
from app.gateways.base import ReportedStatus
from app.models.booking import Booking
from app.models.payment import Payment
from app.services.booking_service import booking_service
from app.services.gateway_service import gateway_service
from app.services.reconciliation_service import ReconciliationResult, reconciliation_service

logger = logging.getLogger(__name__)


class HoldExpiryService:
    """Cancels expired holds, after giving the gateway one last word."""

    async def _expired_booking_ids(self, db: AsyncSession, now: datetime, limit: int) -> list:
        result = await db.execute(
            select(Booking.id)
            .where(
                Booking.status == BookingStatus.PENDING.value,
                Booking.expires_at.is_not(None),
                Booking.expires_at <= now,
            )
            .order_by(Booking.expires_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _pending_payments(self, db: AsyncSession, booking_id) -> list[Payment]:
        result = await db.execute(
            select(Payment)
            .where(
                Payment.booking_id == booking_id,
                Payment.status == PaymentStatus.PENDING.value,
                Payment.requires_review.is_(False),
            )
            .order_by(Payment.created_at)
        )
        return list(result.scalars().all())

    async def _reverify(self, db: AsyncSession, booking_id, now: datetime) -> str | None:
        """Ask the gateway about each pending payment of the booking.

        Returns "confirmed" when a payment turned out to be paid, "deferred"
        when the gateway could not answer, otherwise None.
        """
        unreachable = False
        for payment in await self._pending_payments(db, booking_id):
            try:
                verified = await gateway_service.verify_payment(payment.gateway, payment.reference)
            except UpstreamTimeout:
                logger.warning(f"Gateway unreachable re-verifying {payment.reference}")
                unreachable = True
                continue

            if verified.status == ReportedStatus.PENDING:
                continue

            outcome = await reconciliation_service.reconcile(
                db,
                payment.reference,
                verified.status,
                verified.amount,
                gateway_response=verified.gateway_response,
                channel=verified.channel,
                raw_response=verified.raw_response,
                source="sweep",
                now=now,
            )
            if outcome.result == ReconciliationResult.CONFIRMED:
                return "confirmed"
            if outcome.booking.status != BookingStatus.PENDING:
                return None

        return "deferred" if unreachable else None

    async def sweep_expired_holds(
        self,
        db: AsyncSession,
        now: datetime | None = None,
        batch_size: int = 100,
    ) -> dict:
        """Resolve every PENDING booking past its hold deadline.

        Each booking is committed on its own so one failure does not roll
        back the rest of the batch.

        Returns:
            dict: Counts of expired, confirmed and deferred bookings
        """
        now = now or datetime.now(UTC)
        grace = timedelta(minutes=settings.hold_verify_grace_minutes)
        counts = {"expired": 0, "confirmed": 0, "deferred": 0}

        booking_ids = await self._expired_booking_ids(db, now, batch_size)
        for booking_id in booking_ids:
            try:
                verdict = await self._reverify(db, booking_id, now)
                if verdict == "confirmed":
                    counts["confirmed"] += 1
                    await db.commit()
                    continue

                booking = await booking_service.get_booking(db, booking_id)
                if verdict == "deferred" and booking.expires_at and now < booking.expires_at + grace:
                    counts["deferred"] += 1
                    await db.commit()
                    continue

                if await booking_service.expire_hold(db, booking_id, now=now):
                    counts["expired"] += 1
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception(f"Failed to resolve expired hold for booking {booking_id}")

        if booking_ids:
            logger.info(
                f"Hold sweep: {counts['expired']} expired, {counts['confirmed']} confirmed, "
                f"{counts['deferred']} deferred"
            )
        return counts


hold_expiry_service = HoldExpiryService()
