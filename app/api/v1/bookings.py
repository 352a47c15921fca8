"""Booking endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import (
    AdminUser,
    DbSession,
    OptionalUser,
    check_booking_access,
    require_booking_access,
)
from app.core.middleware import booking_create_limiter
from app.models.booking import Booking
from app.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingCreateResponse,
    BookingListResponse,
    BookingResponse,
    BookingStatsResponse,
)
from app.services.booking_service import booking_service

router = APIRouter()


@router.post(
    "",
    response_model=BookingCreateResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_create_limiter)],
)
async def create_booking(
    booking_data: BookingCreate,
    db: DbSession,
    current_user: OptionalUser,
) -> Booking:
    """Hold seats on a trip and create a PENDING booking.

    Fails with 409 `seat_taken`, `trip_full` or `trip_closed` so the client
    can re-query availability.
    """
    return await booking_service.create_booking(
        db,
        trip_id=booking_data.trip_id,
        seat_labels=booking_data.seat_numbers,
        passenger_details=[p.model_dump(mode="json") for p in booking_data.passenger_details],
        contact_info=booking_data.contact_info.model_dump(mode="json"),
        total_amount=booking_data.total_amount,
        user_id=current_user.id if current_user else None,
    )


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    db: DbSession,
    admin: AdminUser,
    status_filter: Annotated[str | None, Query(alias="status", pattern="^(PENDING|CONFIRMED|CANCELLED|COMPLETED)$")] = None,
    trip_id: Annotated[UUID | None, Query(alias="tripId")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(alias="pageSize", ge=1, le=100)] = 20,
) -> BookingListResponse:
    """List bookings (admin only)."""
    bookings, total = await booking_service.list_bookings(
        db, status=status_filter, trip_id=trip_id, page=page, page_size=page_size
    )
    return BookingListResponse(
        items=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/stats", response_model=BookingStatsResponse)
async def get_booking_stats(db: DbSession, admin: AdminUser) -> dict:
    """Booking counts per status and revenue (admin only)."""
    return await booking_service.booking_stats(db)


@router.get("/reference/{reference}", response_model=BookingResponse)
async def get_booking_by_reference(
    reference: str,
    db: DbSession,
    current_user: OptionalUser,
) -> Booking:
    """Look up a booking by its shareable reference."""
    booking = await booking_service.get_by_reference(db, reference.upper())
    check_booking_access(booking, current_user)
    return booking


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking: Annotated[Booking, Depends(require_booking_access)],
) -> Booking:
    """Get booking details."""
    return booking


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    cancel_data: BookingCancelRequest,
    booking: Annotated[Booking, Depends(require_booking_access)],
    db: DbSession,
    current_user: OptionalUser,
) -> Booking:
    """Cancel a booking and release its seats.

    Confirmed bookings are refunded per the cancellation tiers.
    """
    return await booking_service.cancel(
        db,
        booking.id,
        cancel_data.reason,
        actor=current_user.id if current_user else None,
    )


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    db: DbSession,
    admin: AdminUser,
) -> Booking:
    """Mark a confirmed booking as completed after departure (admin only)."""
    return await booking_service.complete(db, booking_id, actor=admin.id)
