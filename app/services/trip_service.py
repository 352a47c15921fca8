"""Trip scheduling: create, update, delete and complete trips."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.booking_state import BookingStatus
from app.domain.trip_state import TripStatus
from app.models.booking import Booking
from app.models.trip import Route, Seat, Trip
from app.schemas.trip import TripCreate, TripUpdate
from app.services.audit_service import audit_service
from app.services.booking_service import booking_service
from app.services.seat_ledger import seat_ledger

logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes from clients are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TripService:
    """Operator-facing trip management."""

    async def create_route(self, db: AsyncSession, origin: str, destination: str) -> Route:
        route = Route(origin=origin.strip(), destination=destination.strip())
        db.add(route)
        await db.flush()
        return route

    async def _get_or_create_route(self, db: AsyncSession, origin: str, destination: str) -> Route:
        result = await db.execute(
            select(Route).where(
                func.lower(Route.origin) == origin.strip().lower(),
                func.lower(Route.destination) == destination.strip().lower(),
            )
        )
        route = result.scalars().first()
        return route or await self.create_route(db, origin, destination)

    async def get_trip(self, db: AsyncSession, trip_id: UUID) -> Trip:
        result = await db.execute(select(Trip).where(Trip.id == trip_id))
        trip = result.scalar_one_or_none()
        if not trip:
            raise NotFoundError("Trip", str(trip_id))
        return trip

    async def list_trips(
        self,
        db: AsyncSession,
        route_id: UUID | None = None,
        status: str | None = None,
        departing_after: datetime | None = None,
    ) -> list[Trip]:
        query = select(Trip)
        if route_id:
            query = query.where(Trip.route_id == route_id)
        if status:
            query = query.where(Trip.status == status)
        if departing_after:
            query = query.where(Trip.departure_time >= _as_utc(departing_after))
        result = await db.execute(query.order_by(Trip.departure_time))
        return list(result.scalars().all())

    async def create_trip(self, db: AsyncSession, data: TripCreate, actor: str | None = None) -> Trip:
        """Schedule a trip and declare its seats in the same unit of work."""
        if data.route_id:
            route = await db.get(Route, data.route_id)
            if not route:
                raise NotFoundError("Route", str(data.route_id))
        else:
            route = await self._get_or_create_route(db, data.origin, data.destination)

        trip = Trip(
            route_id=route.id,
            departure_time=_as_utc(data.departure_time),
            arrival_time=_as_utc(data.arrival_time),
            max_passengers=data.max_passengers or settings.default_max_passengers,
            seat_layout=data.seat_layout.value if data.seat_layout else settings.default_seat_layout,
            price=data.price,
            currency=data.currency or settings.currency,
            status=TripStatus.ACTIVE.value,
        )
        db.add(trip)
        await db.flush()

        await seat_ledger.initialize_seats(db, trip)
        await audit_service.log_action(
            db, actor, "trip_create", "trip", trip.id,
            new_values={
                "route_id": str(route.id),
                "departure_time": trip.departure_time.isoformat(),
                "max_passengers": trip.max_passengers,
                "seat_layout": trip.seat_layout,
                "price": trip.price,
            },
        )
        logger.info(
            f"Trip {trip.id} scheduled {route.origin} -> {route.destination} "
            f"at {trip.departure_time.isoformat()} with {trip.max_passengers} seats"
        )
        return trip

    async def update_trip(
        self,
        db: AsyncSession,
        trip_id: UUID,
        data: TripUpdate,
        actor: str | None = None,
    ) -> Trip:
        """Apply only the fields the caller explicitly set."""
        trip = await self.get_trip(db, trip_id)
        if trip.status in (TripStatus.CANCELLED, TripStatus.COMPLETED):
            raise ConflictError(f"Trip is {trip.status.lower()} and cannot be changed")

        changes = data.model_dump(exclude_unset=True)
        for key in ("departure_time", "arrival_time"):
            if key in changes:
                changes[key] = _as_utc(changes[key])

        departure = changes.get("departure_time", trip.departure_time)
        arrival = changes.get("arrival_time", trip.arrival_time)
        if departure is None:
            raise ValidationError("departureTime cannot be cleared")
        if arrival and arrival <= departure:
            raise ValidationError("arrivalTime must be after departureTime")
        if "price" in changes and changes["price"] is None:
            raise ValidationError("price cannot be cleared")
        if "status" in changes and changes["status"] is None:
            raise ValidationError("status cannot be cleared")

        old_values = {}
        for key, value in changes.items():
            current = getattr(trip, key)
            old_values[key] = current.isoformat() if isinstance(current, datetime) else current
            setattr(trip, key, value)

        await audit_service.log_action(
            db, actor, "trip_update", "trip", trip.id,
            old_values=old_values,
            new_values={k: v.isoformat() if isinstance(v, datetime) else v for k, v in changes.items()},
        )
        await db.flush()
        return trip

    async def delete_trip(self, db: AsyncSession, trip_id: UUID, actor: str | None = None) -> str:
        """Delete a trip with no bookings; otherwise soft-cancel it.

        Returns:
            str: "deleted" or "cancelled"
        """
        trip = await self.get_trip(db, trip_id)
        result = await db.execute(select(func.count(Booking.id)).where(Booking.trip_id == trip.id))
        booking_count = result.scalar_one()

        if booking_count == 0:
            await audit_service.log_action(
                db, actor, "trip_delete", "trip", trip.id, old_values={"status": trip.status},
            )
            await db.execute(delete(Seat).where(Seat.trip_id == trip_id))
            await db.execute(delete(Trip).where(Trip.id == trip_id))
            logger.info(f"Trip {trip_id} deleted")
            return "deleted"

        old_status = trip.status
        trip.status = TripStatus.CANCELLED.value
        await audit_service.log_action(
            db, actor, "trip_cancel", "trip", trip.id,
            old_values={"status": old_status},
            new_values={"status": trip.status, "bookings": booking_count},
        )
        await db.flush()
        logger.info(f"Trip {trip_id} has {booking_count} bookings; soft-cancelled")
        return "cancelled"

    async def complete_departed_trips(self, db: AsyncSession, now: datetime | None = None) -> dict:
        """Mark ACTIVE trips that have arrived as COMPLETED along with their confirmed bookings."""
        now = now or datetime.now(UTC)
        result = await db.execute(
            select(Trip).where(
                Trip.status == TripStatus.ACTIVE.value,
                func.coalesce(Trip.arrival_time, Trip.departure_time) <= now,
            )
        )
        trips = list(result.scalars().all())

        completed_bookings = 0
        for trip in trips:
            bookings = await db.execute(
                select(Booking.id).where(
                    Booking.trip_id == trip.id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                )
            )
            for booking_id in bookings.scalars().all():
                await booking_service.complete(db, booking_id, now=now)
                completed_bookings += 1
            trip.status = TripStatus.COMPLETED.value

        await db.flush()
        if trips:
            logger.info(f"Completed {len(trips)} trips and {completed_bookings} bookings")
        return {"trips": len(trips), "bookings": completed_bookings}


trip_service = TripService()
