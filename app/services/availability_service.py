"""Read-side seat availability for search and the booking form."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.trip import Trip
from app.services.seat_ledger import seat_ledger


class AvailabilityService:
    """Advisory projection; `seat_ledger.reserve` decides at write time."""

    async def get_availability(self, db: AsyncSession, trip_id: UUID) -> dict:
        result = await db.execute(select(Trip.id).where(Trip.id == trip_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Trip", str(trip_id))

        declared = await seat_ledger.declared_seats(db, trip_id)
        occupied = set(await seat_ledger.occupied_seats(db, trip_id))
        available = [label for label in declared if label not in occupied]

        return {
            "trip_id": trip_id,
            "total_seats": len(declared),
            "booked_seats": [label for label in declared if label in occupied],
            "available_seats": available,
            "available_count": len(available),
        }


availability_service = AvailabilityService()
