"""Trip scheduling and lifecycle."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from app.core.exceptions import ConflictError, NotFoundError, TripNotBookable, ValidationError
from app.models.trip import Route, Seat
from app.schemas.trip import TripCreate, TripUpdate
from app.services.booking_service import booking_service
from app.services.reconciliation_service import reconciliation_service
from app.services.seat_ledger import seat_ledger
from app.services.trip_service import trip_service


async def test_create_trip_declares_seats_and_reuses_route(db, trip):
    second = await trip_service.create_trip(
        db,
        TripCreate(
            origin="lagos",
            destination="IBADAN",
            departure_time=datetime.now(UTC) + timedelta(days=4),
            price=3000,
            max_passengers=8,
            seat_layout="grid4",
        ),
    )

    assert second.route_id == trip.route_id
    assert await seat_ledger.declared_seats(db, second.id) == [
        "A1", "A2", "A3", "A4", "B1", "B2", "B3", "B4",
    ]
    routes = await db.execute(select(func.count(Route.id)))
    assert routes.scalar_one() == 1


async def test_create_trip_uses_default_layout(db):
    trip = await trip_service.create_trip(
        db,
        TripCreate(
            origin="Abuja",
            destination="Kaduna",
            departure_time=datetime.now(UTC) + timedelta(days=1),
            price=1000,
        ),
    )

    assert trip.max_passengers == 7
    assert trip.seat_layout == "front_row"
    assert await seat_ledger.declared_seats(db, trip.id) == ["A1", "B1", "B2", "B3", "B4", "B5", "B6"]


async def test_create_trip_unknown_route(db):
    import uuid

    with pytest.raises(NotFoundError):
        await trip_service.create_trip(
            db,
            TripCreate(
                route_id=uuid.uuid4(),
                departure_time=datetime.now(UTC) + timedelta(days=1),
                price=1000,
            ),
        )


async def test_update_applies_only_sent_fields(db, trip):
    arrival = trip.arrival_time

    updated = await trip_service.update_trip(db, trip.id, TripUpdate(price=3000))

    assert updated.price == 3000
    assert updated.arrival_time == arrival


async def test_update_rejects_arrival_before_departure(db, trip):
    with pytest.raises(ValidationError):
        await trip_service.update_trip(
            db, trip.id, TripUpdate(arrival_time=trip.departure_time - timedelta(hours=1))
        )


async def test_inactive_trip_is_not_bookable(db, trip):
    await trip_service.update_trip(db, trip.id, TripUpdate(status="INACTIVE"))

    with pytest.raises(TripNotBookable):
        await booking_service.create_booking(db, trip.id, ["A1"])


async def test_delete_without_bookings_removes_trip_and_seats(db, trip):
    trip_id = trip.id

    action = await trip_service.delete_trip(db, trip_id)

    assert action == "deleted"
    with pytest.raises(NotFoundError):
        await trip_service.get_trip(db, trip_id)
    seats = await db.execute(select(func.count(Seat.id)).where(Seat.trip_id == trip_id))
    assert seats.scalar_one() == 0


async def test_delete_with_bookings_soft_cancels(db, trip):
    await booking_service.create_booking(db, trip.id, ["A1"])

    action = await trip_service.delete_trip(db, trip.id)

    assert action == "cancelled"
    assert (await trip_service.get_trip(db, trip.id)).status == "CANCELLED"
    with pytest.raises(ConflictError):
        await trip_service.update_trip(db, trip.id, TripUpdate(price=100))


async def test_complete_departed_trips(db, trip):
    booking = await booking_service.create_booking(db, trip.id, ["A1"])
    pending = await booking_service.create_booking(db, trip.id, ["B1"])
    await db.commit()
    payment = await reconciliation_service.initialize_payment(db, booking.id, 2500, "ada@example.com")
    await reconciliation_service.reconcile(db, payment.reference, "success", 2500)

    after_arrival = trip.arrival_time + timedelta(hours=1)
    counts = await trip_service.complete_departed_trips(db, now=after_arrival)

    assert counts == {"trips": 1, "bookings": 1}
    assert (await trip_service.get_trip(db, trip.id)).status == "COMPLETED"
    assert (await booking_service.get_booking(db, booking.id)).status == "COMPLETED"
    assert (await booking_service.get_booking(db, pending.id)).status == "PENDING"


async def test_complete_skips_trips_still_on_the_road(db, trip):
    counts = await trip_service.complete_departed_trips(db, now=trip.departure_time + timedelta(minutes=30))

    assert counts == {"trips": 0, "bookings": 0}


async def test_list_trips_filters(db, trip):
    later = await trip_service.create_trip(
        db,
        TripCreate(
            route_id=trip.route_id,
            departure_time=datetime.now(UTC) + timedelta(days=10),
            price=2500,
            max_passengers=4,
        ),
    )

    trips = await trip_service.list_trips(db, departing_after=datetime.now(UTC) + timedelta(days=5))

    assert [t.id for t in trips] == [later.id]


async def test_update_rejects_clearing_status(db, trip):
    with pytest.raises(ValidationError):
        await trip_service.update_trip(db, trip.id, TripUpdate(status=None))

    assert (await trip_service.get_trip(db, trip.id)).status == "ACTIVE"
