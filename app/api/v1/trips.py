"""Trip and seat availability endpoints."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.api.deps import AdminUser, DbSession
from app.models.trip import Route, Trip
from app.schemas.trip import (
    RouteCreate,
    RouteResponse,
    SeatAvailabilityResponse,
    TripCreate,
    TripDeleteResponse,
    TripResponse,
    TripUpdate,
)
from app.services.availability_service import availability_service
from app.services.trip_service import trip_service

router = APIRouter()


@router.post("/routes", response_model=RouteResponse, status_code=status.HTTP_201_CREATED)
async def create_route(route_data: RouteCreate, db: DbSession, admin: AdminUser) -> Route:
    """Create a route (admin only)."""
    return await trip_service.create_route(db, route_data.origin, route_data.destination)


@router.get("", response_model=list[TripResponse])
async def list_trips(
    db: DbSession,
    route_id: Annotated[UUID | None, Query(alias="routeId")] = None,
    departing_after: Annotated[datetime | None, Query(alias="departingAfter")] = None,
) -> list[Trip]:
    """List active trips."""
    return await trip_service.list_trips(
        db, route_id=route_id, status="ACTIVE", departing_after=departing_after
    )


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(trip_data: TripCreate, db: DbSession, admin: AdminUser) -> Trip:
    """Schedule a trip and declare its seats (admin only)."""
    return await trip_service.create_trip(db, trip_data, actor=admin.id)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: UUID, db: DbSession) -> Trip:
    """Get trip details."""
    return await trip_service.get_trip(db, trip_id)


@router.get("/{trip_id}/seats", response_model=SeatAvailabilityResponse)
async def get_trip_seats(trip_id: UUID, db: DbSession) -> dict:
    """Seats currently free on a trip.

    Advisory only; the booking request is what actually claims seats.
    """
    return await availability_service.get_availability(db, trip_id)


@router.patch("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: UUID,
    trip_data: TripUpdate,
    db: DbSession,
    admin: AdminUser,
) -> Trip:
    """Update schedule, price or status (admin only)."""
    return await trip_service.update_trip(db, trip_id, trip_data, actor=admin.id)


@router.delete("/{trip_id}", response_model=TripDeleteResponse)
async def delete_trip(trip_id: UUID, db: DbSession, admin: AdminUser) -> TripDeleteResponse:
    """Delete a trip, or soft-cancel it when it has bookings (admin only)."""
    action = await trip_service.delete_trip(db, trip_id, actor=admin.id)
    return TripDeleteResponse(id=trip_id, action=action)
