"""Payment gateway service.

Routes payment operations to the appropriate gateway adapter.
No business logic here - only gateway coordination.
"""

from app.config import settings
from app.gateways.base import (
    GatewayEvent,
    GatewayType,
    InitializeResult,
    PaymentGateway,
    VerifyResult,
)
from app.gateways.manual import ManualGateway
from app.gateways.paystack import PaystackGateway


def _is_production() -> bool:
    """Check if running in production environment."""
    return settings.environment == "production"


def _assert_live_keys_only_in_production(gateway: PaymentGateway) -> None:
    """Block live-key gateway operations in non-production environments.

    Raises:
        RuntimeError: If a live key is used outside production
    """
    if isinstance(gateway, PaystackGateway) and gateway.is_live and not _is_production():
        raise RuntimeError(
            f"Cannot use live {gateway.gateway_type.value} keys "
            f"in {settings.environment} environment. Use a test key or set ENVIRONMENT=production."
        )


class GatewayService:
    """Service for managing payment gateway operations."""

    def __init__(self):
        self._gateways: dict[GatewayType, PaymentGateway] = {}

    @property
    def default_gateway(self) -> GatewayType:
        return GatewayType(settings.payment_gateway)

    def register(self, gateway: PaymentGateway) -> None:
        """Install a gateway instance (replaces the lazily built one)."""
        self._gateways[gateway.gateway_type] = gateway

    def reset(self) -> None:
        self._gateways.clear()

    def _get_gateway(self, gateway_type: str | GatewayType | None = None) -> PaymentGateway:
        """Get or create gateway instance."""
        if gateway_type is None:
            gateway_type = self.default_gateway
        if isinstance(gateway_type, str):
            try:
                gateway_type = GatewayType(gateway_type)
            except ValueError:
                gateway_type = GatewayType.MANUAL

        if gateway_type not in self._gateways:
            if gateway_type == GatewayType.PAYSTACK:
                self._gateways[gateway_type] = PaystackGateway()
            else:
                self._gateways[gateway_type] = ManualGateway()

        return self._gateways[gateway_type]

    async def initialize_payment(
        self,
        gateway_type: str | GatewayType | None,
        amount: int,
        currency: str,
        reference: str,
        email: str,
        callback_url: str,
        metadata: dict | None = None,
    ) -> InitializeResult:
        """Initialize a transaction via the specified gateway."""
        gateway = self._get_gateway(gateway_type)
        # Environment safety: block live keys in non-production
        _assert_live_keys_only_in_production(gateway)
        return await gateway.initialize_payment(
            amount=amount,
            currency=currency,
            reference=reference,
            email=email,
            callback_url=callback_url,
            metadata=metadata,
        )

    async def verify_payment(
        self,
        gateway_type: str | GatewayType | None,
        reference: str,
    ) -> VerifyResult:
        """Verify payment status via gateway."""
        gateway = self._get_gateway(gateway_type)
        return await gateway.verify_payment(reference)

    def verify_webhook(
        self,
        gateway_type: str | GatewayType | None,
        payload: bytes,
        signature: str | None,
    ) -> dict | None:
        """Verify webhook from gateway."""
        gateway = self._get_gateway(gateway_type)
        return gateway.verify_webhook(payload, signature)

    def parse_event(
        self,
        gateway_type: str | GatewayType | None,
        data: dict,
    ) -> GatewayEvent | None:
        gateway = self._get_gateway(gateway_type)
        return gateway.parse_event(data)


# Singleton instance
gateway_service = GatewayService()
