"""Webhook endpoints for payment gateways."""

import logging

from fastapi import APIRouter, Header, Request, status

from app.api.deps import DbSession
from app.gateways.base import GatewayType
from app.services.reconciliation_service import reconciliation_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/paystack", status_code=status.HTTP_200_OK)
async def paystack_webhook(
    request: Request,
    db: DbSession,
    x_paystack_signature: str | None = Header(None, alias="x-paystack-signature"),
) -> dict:
    """Handle Paystack webhook events.

    The signature is checked against the raw body before anything is parsed
    or looked up. Events without a payment outcome are acknowledged.
    """
    payload = await request.body()

    outcome = await reconciliation_service.handle_webhook(
        db, payload, x_paystack_signature, gateway=GatewayType.PAYSTACK
    )
    if outcome is None:
        return {"received": True}

    return {
        "received": True,
        "reference": outcome.payment.reference,
        "result": outcome.result.value,
    }
