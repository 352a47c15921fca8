"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    code = "error"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    code = "validation_error"

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    code = "not_found"

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    code = "unauthorized"

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    code = "forbidden"

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictError(AppException):
    """State conflict exception."""

    code = "conflict"

    def __init__(self, detail: str = "The request conflicts with the current state") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


# ==================== SEATS ====================


class SeatConflict(ConflictError):
    """One or more seats are held by another active booking."""

    code = "seat_taken"

    def __init__(self, seats: list[str] | None = None) -> None:
        self.seats = sorted(seats or [])
        detail = "The selected seats are no longer available"
        if self.seats:
            detail = f"Seats already taken: {', '.join(self.seats)}"
        super().__init__(detail)


class CapacityExceeded(ConflictError):
    """Not enough free seats left on the trip."""

    code = "trip_full"

    def __init__(self, requested: int, remaining: int) -> None:
        self.requested = requested
        self.remaining = remaining
        super().__init__(f"Requested {requested} seats but only {remaining} remain on this trip")


class DuplicateInitialization(ConflictError):
    """Seats were already initialized for the trip."""

    code = "duplicate_initialization"

    def __init__(self, trip_id: str) -> None:
        super().__init__(f"Seats for trip '{trip_id}' are already initialized")


class InvalidSeat(AppException):
    """A seat label does not belong to the trip."""

    code = "invalid_seat"

    def __init__(self, seats: list[str]) -> None:
        self.seats = sorted(seats)
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown seats for this trip: {', '.join(self.seats)}",
        )


class TripNotBookable(AppException):
    """Trip is not accepting bookings."""

    code = "trip_closed"

    def __init__(self, detail: str = "This trip is not open for booking") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


# ==================== BOOKINGS / PAYMENTS ====================


class InvalidBookingTransition(ConflictError):
    """Booking state machine rejected a transition."""

    code = "invalid_transition"

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid booking transition: {current} -> {target}")


class InvariantViolation(AppException):
    """A booking/payment invariant would be broken; needs manual review."""

    code = "invariant_violation"

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AmountMismatch(AppException):
    """Amount does not match the booking total."""

    code = "amount_mismatch"

    def __init__(self, expected: int, received: int) -> None:
        self.expected = expected
        self.received = received
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Amount {received} does not match booking total {expected}",
        )


class UnknownReference(AppException):
    """No payment exists for a gateway reference."""

    code = "unknown_reference"

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No payment found for reference '{reference}'",
        )


class WebhookSignatureError(AppException):
    """Webhook signature missing or invalid."""

    code = "invalid_signature"

    def __init__(self, detail: str = "Invalid signature") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class RateLimitExceeded(AppException):
    """Rate limit exceeded exception."""

    code = "rate_limited"

    def __init__(self, detail: str = "Too many requests. Please try again later.", retry_after: int = 60) -> None:
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers={"Retry-After": str(retry_after)},
        )


# ==================== UPSTREAM ====================


class UpstreamTimeout(AppException):
    """Gateway did not answer in time; outcome unknown."""

    code = "upstream_timeout"

    def __init__(self, service: str) -> None:
        super().__init__(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"External service '{service}' timed out; the payment is still pending",
        )


class PaymentGatewayError(AppException):
    """Gateway answered with an error."""

    code = "gateway_error"

    def __init__(self, service: str, detail: str | None = None) -> None:
        message = f"External service '{service}' rejected the request"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)
