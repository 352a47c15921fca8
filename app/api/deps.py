"""API dependencies for authentication and common operations."""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import verify_token
from app.database import get_db
from app.models.booking import Booking
from app.services.booking_service import booking_service

# Security schemes
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Caller identity taken from verified token claims."""

    id: str
    email: str | None = None
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _user_from_token(token: str) -> CurrentUser:
    payload = verify_token(token, token_type="access")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    return CurrentUser(id=str(user_id), email=payload.get("email"), role=payload.get("role", "customer"))


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> CurrentUser:
    """Get the current authenticated user from JWT token."""
    return _user_from_token(credentials.credentials)


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_security)],
) -> CurrentUser | None:
    """Current user if a bearer token was sent, else None (guest checkout)."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials)


async def get_current_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Get current user and verify they are an admin."""
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user


class BookingAccessChecker:
    """Resolve a booking the caller may see.

    Guest bookings (no user id) are reachable by anyone holding the id;
    owned bookings only by their owner or an admin.
    """

    async def __call__(
        self,
        booking_id: UUID,
        db: Annotated[AsyncSession, Depends(get_db)],
        current_user: Annotated[CurrentUser | None, Depends(get_optional_user)],
    ) -> Booking:
        booking = await booking_service.get_booking(db, booking_id)
        check_booking_access(booking, current_user)
        return booking


def check_booking_access(booking: Booking, current_user: CurrentUser | None) -> None:
    if booking.user_id is None:
        return
    if current_user is None:
        raise AuthenticationError("Authentication required")
    if current_user.is_admin or current_user.id == booking.user_id:
        return
    raise AuthorizationError("You don't have permission to access this booking")


# Convenience instances
require_booking_access = BookingAccessChecker()

DbSession = Annotated[AsyncSession, Depends(get_db)]
OptionalUser = Annotated[CurrentUser | None, Depends(get_optional_user)]
AdminUser = Annotated[CurrentUser, Depends(get_current_admin)]
