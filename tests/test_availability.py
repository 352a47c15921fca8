"""Availability query."""

import uuid

import pytest

from app.core.exceptions import NotFoundError
from app.services.availability_service import availability_service
from app.services.booking_service import booking_service


async def test_fresh_trip_has_every_seat(db, trip):
    result = await availability_service.get_availability(db, trip.id)

    assert result["total_seats"] == 4
    assert result["available_seats"] == ["A1", "B1", "B2", "B3"]
    assert result["booked_seats"] == []
    assert result["available_count"] == 4


async def test_held_seats_are_not_available(db, trip):
    await booking_service.create_booking(db, trip.id, ["B2", "A1"])

    result = await availability_service.get_availability(db, trip.id)

    assert result["available_seats"] == ["B1", "B3"]
    assert result["booked_seats"] == ["A1", "B2"]
    assert result["available_count"] == 2


async def test_cancelled_booking_frees_seats(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    await booking_service.cancel(db, booking.id, "changed plans")

    result = await availability_service.get_availability(db, trip.id)

    assert result["available_count"] == 4


async def test_unknown_trip(db):
    with pytest.raises(NotFoundError):
        await availability_service.get_availability(db, uuid.uuid4())
