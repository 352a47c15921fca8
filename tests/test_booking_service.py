"""Booking state machine."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from app.core.exceptions import (
    AmountMismatch,
    InvalidBookingTransition,
    InvariantViolation,
    NotFoundError,
    TripNotBookable,
    ValidationError,
)
from app.models.admin import AuditLog
from app.services.booking_service import booking_service
from app.services.seat_ledger import seat_ledger


async def test_create_booking_holds_seats_as_pending(db, trip):
    before = datetime.now(UTC)
    booking = await booking_service.create_booking(
        db,
        trip.id,
        ["A1", "B1"],
        passenger_details=[{"fullName": "Ada"}, {"fullName": "Tunde"}],
        contact_info={"name": "Ada", "email": "ada@example.com"},
        total_amount=5000,
    )

    assert booking.status == "PENDING"
    assert booking.booking_reference.startswith("BK-")
    assert booking.total_amount == 5000
    assert booking.seat_numbers == ["A1", "B1"]
    assert before + timedelta(minutes=14) < booking.expires_at <= datetime.now(UTC) + timedelta(minutes=15)


async def test_create_booking_writes_audit_row(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["B1"])
    await db.flush()

    result = await db.execute(select(AuditLog).where(AuditLog.resource_id == booking.id))
    entry = result.scalar_one()
    assert entry.action == "booking_pending"
    assert entry.new_values["status"] == "PENDING"


async def test_supplied_total_must_match_price(db, trip):
    with pytest.raises(AmountMismatch):
        await booking_service.create_booking(db, trip.id, ["A1", "B1"], total_amount=4000)


async def test_seat_count_capped_per_booking(db, trip):
    with pytest.raises(ValidationError):
        await booking_service.create_booking(db, trip.id, [f"C{n}" for n in range(1, 8)])


async def test_passenger_details_must_match_seats(db, trip):
    with pytest.raises(ValidationError):
        await booking_service.create_booking(
            db, trip.id, ["A1", "B1"], passenger_details=[{"fullName": "Ada"}]
        )


async def test_unknown_trip(db):
    with pytest.raises(NotFoundError):
        await booking_service.create_booking(db, uuid.uuid4(), ["A1"])


async def test_inactive_trip_not_bookable(db, trip):
    trip.status = "INACTIVE"
    await db.flush()

    with pytest.raises(TripNotBookable):
        await booking_service.create_booking(db, trip.id, ["A1"])


async def test_departed_trip_not_bookable(db, trip):
    with pytest.raises(TripNotBookable):
        await booking_service.create_booking(
            db, trip.id, ["A1"], now=trip.departure_time + timedelta(minutes=1)
        )


async def test_confirm_is_idempotent_for_same_payment(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    payment_id = uuid.uuid4()

    await booking_service.confirm(db, booking.id, payment_id)
    again = await booking_service.confirm(db, booking.id, payment_id)

    assert again.status == "CONFIRMED"
    assert again.confirmed_payment_id == payment_id
    assert again.expires_at is None


async def test_confirm_by_second_payment_is_invariant_violation(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    await booking_service.confirm(db, booking.id, uuid.uuid4())

    with pytest.raises(InvariantViolation):
        await booking_service.confirm(db, booking.id, uuid.uuid4())


async def test_cancelled_booking_cannot_be_confirmed(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    await booking_service.cancel(db, booking.id, "customer request")

    with pytest.raises(InvalidBookingTransition):
        await booking_service.confirm(db, booking.id, uuid.uuid4())


async def test_cancel_pending_releases_seats_without_refund(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1", "B1"])

    cancelled = await booking_service.cancel(db, booking.id, "customer request")

    assert cancelled.status == "CANCELLED"
    assert cancelled.refund_amount == 0
    assert cancelled.cancellation_reason == "customer request"
    assert await seat_ledger.available_seats(db, trip.id) == ["A1", "B1", "B2", "B3"]


async def test_cancel_is_idempotent(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    first = await booking_service.cancel(db, booking.id, "first")
    cancelled_at = first.cancelled_at

    second = await booking_service.cancel(db, booking.id, "second")

    assert second.cancellation_reason == "first"
    assert second.cancelled_at == cancelled_at


async def test_cancel_confirmed_applies_refund_tier(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1", "B1"])
    await booking_service.confirm(db, booking.id, uuid.uuid4())

    cancelled = await booking_service.cancel(
        db, booking.id, "plans changed", now=trip.departure_time - timedelta(hours=13)
    )

    assert cancelled.refund_amount == 2500
    assert "A1" in await seat_ledger.available_seats(db, trip.id)


async def test_cancel_confirmed_after_departure_rejected(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    await booking_service.confirm(db, booking.id, uuid.uuid4())

    with pytest.raises(ValidationError):
        await booking_service.cancel(
            db, booking.id, "too late", now=trip.departure_time + timedelta(hours=1)
        )


async def test_complete_only_after_departure(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    await booking_service.confirm(db, booking.id, uuid.uuid4())

    with pytest.raises(ValidationError):
        await booking_service.complete(db, booking.id)

    completed = await booking_service.complete(
        db, booking.id, now=trip.departure_time + timedelta(hours=3)
    )
    assert completed.status == "COMPLETED"
    assert completed.completed_at is not None


async def test_pending_booking_cannot_complete(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])

    with pytest.raises(InvalidBookingTransition):
        await booking_service.complete(db, booking.id, now=trip.departure_time + timedelta(hours=3))


async def test_expire_hold_only_after_deadline(db, trip):
    now = datetime.now(UTC)
    booking = await booking_service.create_booking(db, trip.id, ["B3"], now=now)

    assert await booking_service.expire_hold(db, booking.id, now=now + timedelta(minutes=5)) is None

    expired = await booking_service.expire_hold(db, booking.id, now=now + timedelta(minutes=16))
    assert expired.status == "CANCELLED"
    assert expired.cancellation_reason == "hold_expired"


async def test_list_and_stats(db, trip):
    first = await booking_service.create_booking(db, trip.id, ["A1"])
    await booking_service.create_booking(db, trip.id, ["B1", "B2"])
    await booking_service.confirm(db, first.id, uuid.uuid4())

    pending, total = await booking_service.list_bookings(db, status="PENDING")
    assert total == 1
    assert pending[0].seat_numbers == ["B1", "B2"]

    stats = await booking_service.booking_stats(db)
    assert stats["pending"] == 1
    assert stats["confirmed"] == 1
    assert stats["total"] == 2
    assert stats["revenue"] == 2500
