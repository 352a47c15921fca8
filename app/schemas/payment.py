"""Payment-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class PaymentInitializeRequest(CamelModel):
    """Schema for initializing a payment."""

    booking_id: UUID
    amount: int = Field(..., gt=0, description="Amount in minor units")
    email: EmailStr


class PaymentInitializeResponse(CamelModel):
    """Where to send the payer."""

    payment_id: UUID
    reference: str
    authorization_url: str | None
    amount: int
    currency: str


class PaymentResponse(CamelModel):
    """Schema for payment response."""

    id: UUID
    booking_id: UUID
    reference: str
    amount: int
    currency: str
    gateway: str
    channel: str | None
    status: str
    paid_at: datetime | None
    failure_reason: str | None
    requires_review: bool
    created_at: datetime


class ReconciliationResponse(CamelModel):
    """Result of verifying a payment."""

    reference: str
    result: str
    payment_status: str
    booking_id: UUID
    booking_reference: str
    booking_status: str
    message: str


class PaymentStatsResponse(CamelModel):
    """Payment totals and success rate."""

    total: int
    successful: int
    failed: int
    pending: int
    requires_review: int
    revenue: int
    success_rate: float
