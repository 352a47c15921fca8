"""Payment endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.deps import (
    AdminUser,
    DbSession,
    OptionalUser,
    check_booking_access,
    require_booking_access,
)
from app.core.middleware import payment_init_limiter
from app.models.booking import Booking
from app.models.payment import Payment
from app.schemas.payment import (
    PaymentInitializeRequest,
    PaymentInitializeResponse,
    PaymentResponse,
    PaymentStatsResponse,
    ReconciliationResponse,
)
from app.services.booking_service import booking_service
from app.services.reconciliation_service import ReconciliationOutcome, reconciliation_service

router = APIRouter()


def _outcome_response(outcome: ReconciliationOutcome) -> ReconciliationResponse:
    return ReconciliationResponse(
        reference=outcome.payment.reference,
        result=outcome.result.value,
        payment_status=outcome.payment.status,
        booking_id=outcome.booking.id,
        booking_reference=outcome.booking.booking_reference,
        booking_status=outcome.booking.status,
        message=outcome.message,
    )


@router.post(
    "/initialize",
    response_model=PaymentInitializeResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(payment_init_limiter)],
)
async def initialize_payment(
    payment_data: PaymentInitializeRequest,
    db: DbSession,
    current_user: OptionalUser,
) -> PaymentInitializeResponse:
    """Open a gateway transaction for a PENDING booking.

    A gateway timeout answers 504 and leaves the booking PENDING.
    """
    booking = await booking_service.get_booking(db, payment_data.booking_id)
    check_booking_access(booking, current_user)

    payment = await reconciliation_service.initialize_payment(
        db,
        booking_id=payment_data.booking_id,
        amount=payment_data.amount,
        payer_email=payment_data.email,
        actor=current_user.id if current_user else None,
    )
    return PaymentInitializeResponse(
        payment_id=payment.id,
        reference=payment.reference,
        authorization_url=payment.authorization_url,
        amount=payment.amount,
        currency=payment.currency,
    )


@router.get("/verify/{reference}", response_model=ReconciliationResponse)
async def verify_payment(reference: str, db: DbSession) -> ReconciliationResponse:
    """Ask the gateway about a payment and reconcile the answer."""
    outcome = await reconciliation_service.verify_payment(db, reference)
    return _outcome_response(outcome)


@router.get("/stats", response_model=PaymentStatsResponse)
async def get_payment_stats(db: DbSession, admin: AdminUser) -> dict:
    """Payment totals and success rate (admin only)."""
    return await reconciliation_service.payment_stats(db)


@router.get("/booking/{booking_id}", response_model=list[PaymentResponse])
async def list_booking_payments(
    booking: Annotated[Booking, Depends(require_booking_access)],
    db: DbSession,
) -> list[Payment]:
    """All payment attempts for a booking."""
    return await reconciliation_service.list_for_booking(db, booking.id)
