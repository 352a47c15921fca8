"""Database models."""

from app.models.admin import AuditLog
from app.models.booking import Booking, BookingSeat
from app.models.payment import Payment
from app.models.rate_limit import RateLimit
from app.models.trip import Route, Seat, Trip

__all__ = [
    # Trips
    "Route",
    "Trip",
    "Seat",
    # Bookings
    "Booking",
    "BookingSeat",
    # Payments
    "Payment",
    # Security
    "RateLimit",
    # Admin
    "AuditLog",
]
