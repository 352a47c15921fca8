"""Payment reconciliation engine.

Every gateway report (webhook, client verify-poll, hold-expiry sweep) goes
through `reconcile`, which is idempotent per payment reference.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AmountMismatch,
    ConflictError,
    InvalidBookingTransition,
    InvariantViolation,
    PaymentGatewayError,
    UnknownReference,
    UpstreamTimeout,
    WebhookSignatureError,
)
from app.domain.booking_state import BookingStatus
from app.domain.payment_state import PaymentStatus, assert_payment_transition
from app.gateways.base import GatewayType, ReportedStatus
from app.models.booking import Booking
from app.models.payment import Payment
from app.services.alert_service import raise_operational_alert
from app.services.audit_service import audit_service
from app.services.booking_service import booking_service
from app.services.gateway_service import gateway_service
from app.utils.booking_number import generate_payment_reference

logger = logging.getLogger(__name__)

AMOUNT_MISMATCH_REASON = "AmountMismatch"
GENERIC_FAILURE_MESSAGE = "Payment could not be completed"


class ReconciliationResult(str, Enum):
    """What a reconcile call did."""

    CONFIRMED = "confirmed"
    ALREADY_PAID = "already_paid"
    PENDING = "pending"
    FAILED = "failed"
    ALREADY_FAILED = "already_failed"
    AMOUNT_MISMATCH = "amount_mismatch"
    MANUAL_REVIEW = "manual_review"


@dataclass
class ReconciliationOutcome:
    """Typed result of reconciling one gateway report."""

    result: ReconciliationResult
    payment: Payment
    booking: Booking

    @property
    def paid(self) -> bool:
        return self.result in (ReconciliationResult.CONFIRMED, ReconciliationResult.ALREADY_PAID)

    @property
    def message(self) -> str:
        if self.paid:
            return "Payment successful"
        if self.result == ReconciliationResult.PENDING:
            return "Payment is still being processed"
        if self.result == ReconciliationResult.MANUAL_REVIEW:
            return "Payment received and is under review"
        return self.payment.failure_reason or GENERIC_FAILURE_MESSAGE


class ReconciliationService:
    """Matches gateway reports to payments and drives booking transitions."""

    async def _get_payment(
        self,
        db: AsyncSession,
        reference: str,
        for_update: bool = False,
    ) -> Payment:
        query = select(Payment).where(Payment.reference == reference)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await db.execute(query)
        payment = result.scalar_one_or_none()
        if not payment:
            raise UnknownReference(reference)
        return payment

    # ==================== INITIALIZE ====================

    async def initialize_payment(
        self,
        db: AsyncSession,
        booking_id: UUID,
        amount: int,
        payer_email: str,
        gateway: str | GatewayType | None = None,
        actor: str | None = None,
        now: datetime | None = None,
    ) -> Payment:
        """Create a PENDING payment and open a gateway transaction for it.

        The payment row is committed before the gateway call so the reference
        is known if the gateway answers late, and no row lock is held while
        waiting.

        Raises:
            AmountMismatch: Amount differs from the booking total
            ConflictError: Booking is not payable
            UpstreamTimeout: Gateway did not answer; payment stays PENDING
            PaymentGatewayError: Gateway refused; payment marked FAILED
        """
        now = now or datetime.now(UTC)
        booking = await booking_service.get_booking(db, booking_id, for_update=True)

        if booking.status != BookingStatus.PENDING:
            raise ConflictError(f"Booking is {booking.status.lower()} and cannot be paid")
        if booking.expires_at is not None and booking.expires_at <= now:
            raise ConflictError("The seat hold for this booking has expired")
        if amount != booking.total_amount:
            raise AmountMismatch(booking.total_amount, amount)

        gateway_type = GatewayType(gateway or settings.payment_gateway)
        payment = Payment(
            booking_id=booking.id,
            reference=generate_payment_reference(booking.booking_reference),
            amount=amount,
            currency=booking.currency,
            gateway=gateway_type.value,
            payer_email=payer_email,
            status=PaymentStatus.PENDING.value,
        )
        db.add(payment)
        await db.flush()
        await audit_service.log_payment_action(
            db, "payment_initialize", payment.id, None, PaymentStatus.PENDING.value,
            amount=amount, actor=actor, reference=payment.reference,
        )
        await db.commit()

        try:
            result = await gateway_service.initialize_payment(
                gateway_type,
                amount=amount,
                currency=payment.currency,
                reference=payment.reference,
                email=payer_email,
                callback_url=settings.payment_callback_url,
                metadata={
                    "booking_id": str(booking.id),
                    "booking_reference": booking.booking_reference,
                },
            )
        except UpstreamTimeout:
            logger.warning(
                f"Gateway timeout initializing {payment.reference}; "
                f"booking {booking.booking_reference} stays pending"
            )
            raise

        if not result.success:
            payment.status = PaymentStatus.FAILED.value
            payment.failure_reason = result.error_message or GENERIC_FAILURE_MESSAGE
            payment.gateway_response = result.raw_response
            await audit_service.log_payment_action(
                db, "payment_initialize_failed", payment.id, PaymentStatus.PENDING.value,
                PaymentStatus.FAILED.value, actor=actor, reason=payment.failure_reason,
            )
            await db.commit()
            logger.warning(f"Gateway rejected {payment.reference}: {payment.failure_reason}")
            raise PaymentGatewayError(gateway_type.value, result.error_message)

        payment.authorization_url = result.authorization_url
        await db.flush()
        logger.info(
            f"Payment {payment.reference} initialized for booking "
            f"{booking.booking_reference} ({amount} {payment.currency})"
        )
        return payment

    # ==================== RECONCILE ====================

    async def reconcile(
        self,
        db: AsyncSession,
        reference: str,
        reported_status: str | ReportedStatus,
        reported_amount: int | None,
        gateway_response: str | None = None,
        channel: str | None = None,
        raw_response: dict | None = None,
        source: str = "webhook",
        now: datetime | None = None,
    ) -> ReconciliationOutcome:
        """Apply one gateway report to its payment and booking.

        Raises:
            UnknownReference: No payment has this reference
        """
        now = now or datetime.now(UTC)
        reported_status = ReportedStatus(reported_status)
        payment = await self._get_payment(db, reference, for_update=True)
        booking = await booking_service.get_booking(db, payment.booking_id)

        if payment.status == PaymentStatus.PAID:
            logger.info(f"Duplicate {source} report for paid payment {reference}; no change")
            return ReconciliationOutcome(ReconciliationResult.ALREADY_PAID, payment, booking)

        if reported_status == ReportedStatus.PENDING:
            return ReconciliationOutcome(ReconciliationResult.PENDING, payment, booking)

        if payment.requires_review:
            return ReconciliationOutcome(ReconciliationResult.MANUAL_REVIEW, payment, booking)

        if payment.status == PaymentStatus.FAILED:
            if reported_status == ReportedStatus.SUCCESS:
                return await self._flag_for_review(
                    db, payment, booking,
                    f"Gateway reports success for payment already marked failed "
                    f"({payment.failure_reason})",
                    now=now,
                )
            return ReconciliationOutcome(ReconciliationResult.ALREADY_FAILED, payment, booking)

        payment.channel = channel or payment.channel
        payment.gateway_response = raw_response or payment.gateway_response

        if reported_amount != payment.amount:
            return await self._handle_amount_mismatch(
                db, payment, booking, reported_status, reported_amount, source, now
            )

        if reported_status == ReportedStatus.SUCCESS:
            return await self._handle_success(db, payment, booking, source, now)

        return await self._handle_failure(db, payment, booking, gateway_response, source, now)

    async def _handle_success(
        self,
        db: AsyncSession,
        payment: Payment,
        booking: Booking,
        source: str,
        now: datetime,
    ) -> ReconciliationOutcome:
        try:
            booking = await booking_service.confirm(db, booking.id, payment.id, now=now)
        except InvariantViolation as exc:
            return await self._flag_for_review(db, payment, booking, exc.detail, now=now)
        except InvalidBookingTransition:
            return await self._flag_for_review(
                db, payment, booking,
                f"Payment succeeded but booking {booking.booking_reference} is {booking.status}",
                now=now,
            )

        assert_payment_transition(payment.status, PaymentStatus.PAID)
        payment.status = PaymentStatus.PAID.value
        payment.paid_at = now
        payment.failure_reason = None
        await db.flush()

        await audit_service.log_payment_action(
            db, "payment_paid", payment.id, PaymentStatus.PENDING.value, PaymentStatus.PAID.value,
            amount=payment.amount, source=source,
        )
        logger.info(
            f"Payment {payment.reference} PAID via {source}; "
            f"booking {booking.booking_reference} confirmed"
        )
        return ReconciliationOutcome(ReconciliationResult.CONFIRMED, payment, booking)

    async def _handle_failure(
        self,
        db: AsyncSession,
        payment: Payment,
        booking: Booking,
        gateway_response: str | None,
        source: str,
        now: datetime,
    ) -> ReconciliationOutcome:
        assert_payment_transition(payment.status, PaymentStatus.FAILED)
        payment.status = PaymentStatus.FAILED.value
        payment.failure_reason = gateway_response or GENERIC_FAILURE_MESSAGE

        await audit_service.log_payment_action(
            db, "payment_failed", payment.id, PaymentStatus.PENDING.value, PaymentStatus.FAILED.value,
            amount=payment.amount, source=source, reason=payment.failure_reason,
        )
        if booking.status == BookingStatus.PENDING:
            booking = await booking_service.cancel(db, booking.id, "payment_failed", now=now)

        logger.info(f"Payment {payment.reference} FAILED via {source}: {payment.failure_reason}")
        return ReconciliationOutcome(ReconciliationResult.FAILED, payment, booking)

    async def _handle_amount_mismatch(
        self,
        db: AsyncSession,
        payment: Payment,
        booking: Booking,
        reported_status: ReportedStatus,
        reported_amount: int | None,
        source: str,
        now: datetime,
    ) -> ReconciliationOutcome:
        assert_payment_transition(payment.status, PaymentStatus.FAILED)
        payment.status = PaymentStatus.FAILED.value
        payment.failure_reason = AMOUNT_MISMATCH_REASON

        await audit_service.log_payment_action(
            db, "payment_amount_mismatch", payment.id, PaymentStatus.PENDING.value,
            PaymentStatus.FAILED.value, amount=payment.amount, source=source,
            reported_amount=reported_amount, reported_status=reported_status.value,
        )
        if booking.status == BookingStatus.PENDING:
            booking = await booking_service.cancel(db, booking.id, "payment_amount_mismatch", now=now)

        if reported_status == ReportedStatus.SUCCESS:
            # Money moved, but not the amount we asked for
            payment.requires_review = True
            payment.review_reason = (
                f"Gateway reported {reported_amount} paid, expected {payment.amount}"
            )
            raise_operational_alert(
                "Payment amount mismatch",
                reference=payment.reference,
                expected=payment.amount,
                reported=reported_amount,
                booking=booking.booking_reference,
            )
        else:
            logger.warning(
                f"Amount mismatch on failed report for {payment.reference}: "
                f"expected {payment.amount}, reported {reported_amount}"
            )

        return ReconciliationOutcome(ReconciliationResult.AMOUNT_MISMATCH, payment, booking)

    async def _flag_for_review(
        self,
        db: AsyncSession,
        payment: Payment,
        booking: Booking,
        reason: str,
        now: datetime,
    ) -> ReconciliationOutcome:
        """Record money the booking cannot absorb; never raises."""
        payment.requires_review = True
        payment.review_reason = reason

        await audit_service.log_payment_action(
            db, "payment_manual_review", payment.id, payment.status, payment.status,
            amount=payment.amount, reason=reason,
        )
        raise_operational_alert(
            "Payment requires manual review",
            reference=payment.reference,
            booking=booking.booking_reference,
            booking_status=booking.status,
            reason=reason,
        )
        return ReconciliationOutcome(ReconciliationResult.MANUAL_REVIEW, payment, booking)

    # ==================== ENTRY POINTS ====================

    async def verify_payment(self, db: AsyncSession, reference: str) -> ReconciliationOutcome:
        """Client verify-poll: ask the gateway, then reconcile.

        Raises:
            UnknownReference: No payment has this reference
            UpstreamTimeout: Gateway did not answer; nothing changes
        """
        payment = await self._get_payment(db, reference)
        if payment.status == PaymentStatus.PAID:
            booking = await booking_service.get_booking(db, payment.booking_id)
            return ReconciliationOutcome(ReconciliationResult.ALREADY_PAID, payment, booking)

        result = await gateway_service.verify_payment(payment.gateway, reference)
        return await self.reconcile(
            db,
            reference,
            result.status,
            result.amount,
            gateway_response=result.gateway_response,
            channel=result.channel,
            raw_response=result.raw_response,
            source="verify",
        )

    async def handle_webhook(
        self,
        db: AsyncSession,
        payload: bytes,
        signature: str | None,
        gateway: str | GatewayType = GatewayType.PAYSTACK,
    ) -> ReconciliationOutcome | None:
        """Authenticate a raw webhook body, then reconcile it.

        Returns None for events that carry no payment outcome.

        Raises:
            WebhookSignatureError: Signature missing or invalid
            UnknownReference: Event names a reference we never issued
        """
        data = gateway_service.verify_webhook(gateway, payload, signature)
        if data is None:
            logger.warning(f"Rejected {gateway} webhook with invalid signature")
            raise WebhookSignatureError()

        event = gateway_service.parse_event(gateway, data)
        if event is None or event.status is None or not event.reference:
            logger.info(f"Ignoring {gateway} webhook event {event.event if event else None}")
            return None

        return await self.reconcile(
            db,
            event.reference,
            event.status,
            event.amount,
            gateway_response=event.gateway_response,
            channel=event.channel,
            raw_response=event.raw_response,
            source="webhook",
        )

    # ==================== QUERIES ====================

    async def list_for_booking(self, db: AsyncSession, booking_id: UUID) -> list[Payment]:
        result = await db.execute(
            select(Payment).where(Payment.booking_id == booking_id).order_by(Payment.created_at)
        )
        return list(result.scalars().all())

    async def payment_stats(self, db: AsyncSession) -> dict:
        """Totals, counts per status, revenue and success rate."""
        result = await db.execute(
            select(
                func.count(Payment.id),
                func.sum(case((Payment.status == PaymentStatus.PAID.value, 1), else_=0)),
                func.sum(case((Payment.status == PaymentStatus.FAILED.value, 1), else_=0)),
                func.sum(case((Payment.status == PaymentStatus.PENDING.value, 1), else_=0)),
                func.sum(case((Payment.status == PaymentStatus.PAID.value, Payment.amount), else_=0)),
                func.sum(case((Payment.requires_review.is_(True), 1), else_=0)),
            )
        )
        total, successful, failed, pending, revenue, review = result.one()
        total = total or 0
        successful = int(successful or 0)
        return {
            "total": total,
            "successful": successful,
            "failed": int(failed or 0),
            "pending": int(pending or 0),
            "requires_review": int(review or 0),
            "revenue": int(revenue or 0),
            "success_rate": round(successful / total * 100, 2) if total else 0.0,
        }


reconciliation_service = ReconciliationService()
