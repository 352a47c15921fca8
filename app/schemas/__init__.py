"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingCreateResponse,
    BookingListResponse,
    BookingResponse,
    BookingStatsResponse,
    ContactInfo,
    PassengerDetail,
)
from app.schemas.payment import (
    PaymentInitializeRequest,
    PaymentInitializeResponse,
    PaymentResponse,
    PaymentStatsResponse,
    ReconciliationResponse,
)
from app.schemas.trip import (
    RouteCreate,
    RouteResponse,
    SeatAvailabilityResponse,
    TripCreate,
    TripDeleteResponse,
    TripResponse,
    TripUpdate,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingCreateResponse",
    "BookingResponse",
    "BookingCancelRequest",
    "BookingListResponse",
    "BookingStatsResponse",
    "ContactInfo",
    "PassengerDetail",
    # Payment
    "PaymentInitializeRequest",
    "PaymentInitializeResponse",
    "PaymentResponse",
    "PaymentStatsResponse",
    "ReconciliationResponse",
    # Trip
    "RouteCreate",
    "RouteResponse",
    "TripCreate",
    "TripUpdate",
    "TripResponse",
    "TripDeleteResponse",
    "SeatAvailabilityResponse",
]
