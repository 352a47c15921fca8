"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    PAYSTACK = "paystack"
    MANUAL = "manual"


class ReportedStatus(str, Enum):
    """Payment outcome as reported by a gateway."""

    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


@dataclass
class InitializeResult:
    """Result of initializing a transaction."""

    success: bool
    reference: str | None = None
    authorization_url: str | None = None
    access_code: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


@dataclass
class VerifyResult:
    """Gateway's view of a transaction."""

    status: ReportedStatus
    reference: str
    amount: int | None = None
    channel: str | None = None
    gateway_response: str | None = None
    raw_response: dict | None = None

    @property
    def success(self) -> bool:
        return self.status == ReportedStatus.SUCCESS


@dataclass
class GatewayEvent:
    """Webhook event normalized across gateways."""

    event: str
    reference: str | None
    status: ReportedStatus | None  # None for events we do not reconcile
    amount: int | None = None
    channel: str | None = None
    gateway_response: str | None = None
    raw_response: dict | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def initialize_payment(
        self,
        amount: int,
        currency: str,
        reference: str,
        email: str,
        callback_url: str,
        metadata: dict | None = None,
    ) -> InitializeResult:
        """Initialize a transaction and obtain a checkout URL.

        Args:
            amount: Amount in minor currency units
            currency: ISO currency code
            reference: Our unique transaction reference
            email: Payer email
            callback_url: Where the gateway redirects the payer
            metadata: Additional metadata echoed back by the gateway

        Returns:
            InitializeResult with the authorization URL

        Raises:
            UpstreamTimeout: Gateway did not answer in time
        """
        pass

    @abstractmethod
    async def verify_payment(self, reference: str) -> VerifyResult:
        """Fetch the gateway's current status for a transaction.

        Raises:
            UpstreamTimeout: Gateway did not answer in time
        """
        pass

    @abstractmethod
    def verify_webhook(
        self,
        payload: bytes,
        signature: str | None,
    ) -> dict | None:
        """Verify webhook signature and parse payload.

        Args:
            payload: Raw request body
            signature: Webhook signature header

        Returns:
            Parsed event dict if valid, None if invalid
        """
        pass

    @abstractmethod
    def parse_event(self, data: dict) -> GatewayEvent | None:
        """Normalize a verified webhook body."""
        pass
