"""Booking-related Pydantic schemas."""

import re
from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.schemas.base import CamelModel

SEAT_LABEL_PATTERN = re.compile(r"^[A-Z][0-9]{1,3}$")


class PassengerDetail(CamelModel):
    """One traveller."""

    full_name: str = Field(..., min_length=2, max_length=100)
    phone: str | None = Field(None, max_length=20)
    email: EmailStr | None = None


class ContactInfo(CamelModel):
    """Who to reach about the booking."""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, max_length=20)


class BookingCreate(CamelModel):
    """Schema for creating a booking."""

    trip_id: UUID
    seat_numbers: list[str] = Field(..., min_length=1)
    passenger_details: list[PassengerDetail] = Field(default_factory=list)
    contact_info: ContactInfo
    total_amount: int | None = Field(None, gt=0)

    @field_validator("seat_numbers")
    @classmethod
    def validate_seat_numbers(cls, v: list[str]) -> list[str]:
        labels = [label.strip().upper() for label in v]
        for label in labels:
            if not SEAT_LABEL_PATTERN.match(label):
                raise ValueError(f"Invalid seat label: {label}")
        if len(set(labels)) != len(labels):
            raise ValueError("Each seat can only be selected once")
        return labels


class BookingCreateResponse(CamelModel):
    """Returned after a successful seat hold."""

    id: UUID
    booking_reference: str
    status: str
    total_amount: int
    currency: str
    seat_numbers: list[str]
    expires_at: datetime | None


class BookingResponse(CamelModel):
    """Schema for booking response."""

    id: UUID
    booking_reference: str
    trip_id: UUID
    user_id: str | None
    seat_numbers: list[str]
    passenger_details: list[dict]
    contact_info: dict | None
    total_amount: int
    currency: str
    status: str
    confirmed_payment_id: UUID | None
    expires_at: datetime | None
    cancellation_reason: str | None
    refund_amount: int
    created_at: datetime
    confirmed_at: datetime | None
    cancelled_at: datetime | None
    completed_at: datetime | None


class BookingCancelRequest(CamelModel):
    """Schema for cancelling a booking."""

    reason: str = Field(..., min_length=3, max_length=500)


class BookingListResponse(CamelModel):
    """Paginated bookings."""

    items: list[BookingResponse]
    total: int
    page: int
    page_size: int


class BookingStatsResponse(CamelModel):
    """Booking counts per status and confirmed revenue."""

    pending: int
    confirmed: int
    cancelled: int
    completed: int
    total: int
    revenue: int
