"""Paystack payment gateway adapter.

Documentation: https://paystack.com/docs/api/transaction/
"""

import hashlib
import hmac
import json
import logging

import httpx

from app.config import settings
from app.core.exceptions import UpstreamTimeout
from app.gateways.base import (
    GatewayEvent,
    GatewayType,
    InitializeResult,
    PaymentGateway,
    ReportedStatus,
    VerifyResult,
)

logger = logging.getLogger(__name__)

# Paystack transaction status -> reported outcome
STATUS_MAP = {
    "success": ReportedStatus.SUCCESS,
    "failed": ReportedStatus.FAILED,
    "reversed": ReportedStatus.FAILED,
}

EVENT_MAP = {
    "charge.success": ReportedStatus.SUCCESS,
    "charge.failed": ReportedStatus.FAILED,
}


class PaystackGateway(PaymentGateway):
    """Paystack payment gateway implementation."""

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.secret_key = secret_key or settings.paystack_secret_key
        self.base_url = (base_url or settings.paystack_base_url).rstrip("/")
        self.timeout = timeout or settings.gateway_timeout_seconds
        self._transport = transport

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.PAYSTACK

    @property
    def is_live(self) -> bool:
        return bool(self.secret_key and self.secret_key.startswith("sk_live_"))

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.secret_key}",
                "Content-Type": "application/json",
            },
        )

    async def initialize_payment(
        self,
        amount: int,
        currency: str,
        reference: str,
        email: str,
        callback_url: str,
        metadata: dict | None = None,
    ) -> InitializeResult:
        """Create a Paystack transaction and return its checkout URL."""
        if not self.secret_key:
            return InitializeResult(
                success=False,
                error_message="Paystack credentials not configured",
            )

        body = {
            "email": email,
            "amount": amount,
            "currency": currency,
            "reference": reference,
            "callback_url": callback_url,
            "metadata": metadata or {},
        }

        try:
            async with self._client() as client:
                response = await client.post("/transaction/initialize", json=body)
        except httpx.TransportError as e:
            logger.warning(f"Paystack initialize for {reference} did not complete: {e!r}")
            raise UpstreamTimeout("paystack") from e

        data = _json_or_empty(response)
        if response.status_code != 200 or not data.get("status"):
            return InitializeResult(
                success=False,
                reference=reference,
                error_message=data.get("message") or f"API returned {response.status_code}",
                raw_response=data,
            )

        payload = data.get("data") or {}
        return InitializeResult(
            success=True,
            reference=payload.get("reference", reference),
            authorization_url=payload.get("authorization_url"),
            access_code=payload.get("access_code"),
            raw_response=data,
        )

    async def verify_payment(self, reference: str) -> VerifyResult:
        """Verify a Paystack transaction by reference."""
        if not self.secret_key:
            return VerifyResult(
                status=ReportedStatus.PENDING,
                reference=reference,
                gateway_response="Paystack credentials not configured",
            )

        try:
            async with self._client() as client:
                response = await client.get(f"/transaction/verify/{reference}")
        except httpx.TransportError as e:
            logger.warning(f"Paystack verify for {reference} did not complete: {e!r}")
            raise UpstreamTimeout("paystack") from e

        data = _json_or_empty(response)
        payload = data.get("data") or {}
        if response.status_code != 200 or not data.get("status"):
            return VerifyResult(
                status=ReportedStatus.PENDING,
                reference=reference,
                gateway_response=data.get("message") or f"API returned {response.status_code}",
                raw_response=data,
            )

        return VerifyResult(
            status=STATUS_MAP.get(payload.get("status"), ReportedStatus.PENDING),
            reference=payload.get("reference", reference),
            amount=payload.get("amount"),
            channel=payload.get("channel"),
            gateway_response=payload.get("gateway_response"),
            raw_response=payload,
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str | None,
    ) -> dict | None:
        """Check the HMAC-SHA512 signature of the raw body, then parse it."""
        if not self.secret_key or not signature:
            return None

        expected = hmac.new(
            self.secret_key.encode(), payload, hashlib.sha512
        ).hexdigest()
        if not hmac.compare_digest(expected, signature):
            return None

        try:
            data = json.loads(payload)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def parse_event(self, data: dict) -> GatewayEvent | None:
        event = data.get("event")
        if not event:
            return None

        payload = data.get("data") or {}
        return GatewayEvent(
            event=event,
            reference=payload.get("reference"),
            status=EVENT_MAP.get(event),
            amount=payload.get("amount"),
            channel=payload.get("channel"),
            gateway_response=payload.get("gateway_response"),
            raw_response=payload,
        )


def sign_payload(secret_key: str, payload: bytes) -> str:
    """Compute the signature Paystack sends in `x-paystack-signature`."""
    return hmac.new(secret_key.encode(), payload, hashlib.sha512).hexdigest()


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
