"""Trip, route and seat availability schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import ConfigDict, Field, model_validator

from app.domain.seat_layout import SeatLayout
from app.schemas.base import CamelModel


class RouteCreate(CamelModel):
    """Schema for creating a route."""

    origin: str = Field(..., min_length=2, max_length=100)
    destination: str = Field(..., min_length=2, max_length=100)


class RouteResponse(CamelModel):
    """Schema for route response."""

    id: UUID
    origin: str
    destination: str


class TripCreate(CamelModel):
    """Schema for scheduling a trip.

    Either `route_id` or an origin/destination pair must be given.
    """

    route_id: UUID | None = None
    origin: str | None = Field(None, min_length=2, max_length=100)
    destination: str | None = Field(None, min_length=2, max_length=100)
    departure_time: datetime
    arrival_time: datetime | None = None
    price: int = Field(..., gt=0, description="Price per seat in minor units")
    currency: str | None = Field(None, min_length=3, max_length=3)
    max_passengers: int | None = Field(None, ge=1, le=104)
    seat_layout: SeatLayout | None = None

    @model_validator(mode="after")
    def validate_trip(self) -> "TripCreate":
        if self.route_id is None and not (self.origin and self.destination):
            raise ValueError("routeId or both origin and destination are required")
        if self.arrival_time and self.arrival_time <= self.departure_time:
            raise ValueError("arrivalTime must be after departureTime")
        return self


class TripUpdate(CamelModel):
    """Schema for updating a trip. Only fields that are sent are applied.

    Capacity and seat layout are fixed once seats are declared.
    """

    model_config = ConfigDict(extra="forbid")

    departure_time: datetime | None = None
    arrival_time: datetime | None = None
    price: int | None = Field(None, gt=0)
    status: str | None = Field(None, pattern="^(ACTIVE|INACTIVE)$")

    @model_validator(mode="after")
    def validate_times(self) -> "TripUpdate":
        if self.departure_time and self.arrival_time and self.arrival_time <= self.departure_time:
            raise ValueError("arrivalTime must be after departureTime")
        return self


class TripResponse(CamelModel):
    """Schema for trip response."""

    id: UUID
    route_id: UUID
    departure_time: datetime
    arrival_time: datetime | None
    max_passengers: int
    seat_layout: str
    price: int
    currency: str
    status: str
    created_at: datetime


class TripDeleteResponse(CamelModel):
    """Outcome of a delete request: removed outright or soft-cancelled."""

    id: UUID
    action: str  # deleted, cancelled


class SeatAvailabilityResponse(CamelModel):
    """Seat availability for one trip. Advisory only."""

    trip_id: UUID
    total_seats: int
    booked_seats: list[str]
    available_seats: list[str]
    available_count: int
