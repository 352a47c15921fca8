"""Manual payment gateway adapter for offline/bank-transfer payments."""

from urllib.parse import urlencode

from app.gateways.base import (
    GatewayEvent,
    GatewayType,
    InitializeResult,
    PaymentGateway,
    ReportedStatus,
    VerifyResult,
)


class ManualGateway(PaymentGateway):
    """Manual payment gateway for bank transfers.

    Initialization always succeeds; verification stays pending until an
    operator settles the payment out of band.
    """

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    async def initialize_payment(
        self,
        amount: int,
        currency: str,
        reference: str,
        email: str,
        callback_url: str,
        metadata: dict | None = None,
    ) -> InitializeResult:
        """Create manual payment request (always succeeds)."""
        return InitializeResult(
            success=True,
            reference=reference,
            authorization_url=f"{callback_url}?{urlencode({'reference': reference})}",
            raw_response={
                "type": "bank_transfer",
                "status": "pending_verification",
                "amount": amount,
                "currency": currency,
            },
        )

    async def verify_payment(self, reference: str) -> VerifyResult:
        """Verify manual payment (requires operator verification)."""
        return VerifyResult(
            status=ReportedStatus.PENDING,
            reference=reference,
            gateway_response="Manual verification required",
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str | None,
    ) -> dict | None:
        """Manual gateway doesn't have webhooks."""
        return None

    def parse_event(self, data: dict) -> GatewayEvent | None:
        return None
