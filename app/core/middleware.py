"""Custom middleware for the application."""

import logging
import time
import uuid
from typing import Annotated

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.config import settings
from app.core.exceptions import RateLimitExceeded
from app.core.logging_config import REQUEST_ID_CTX
from app.database import get_db
from app.services.rate_limit_service import rate_limit_service

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    # Check for forwarded headers (behind proxy/load balancer)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging requests and response times."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Log request details and timing.

        Args:
            request: Incoming request
            call_next: Next middleware/route handler

        Returns:
            Response: Route response
        """
        start_time = time.time()

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        token = REQUEST_ID_CTX.set(request_id)

        try:
            response = await call_next(request)

            duration = time.time() - start_time
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration:.3f}s"

            message = (
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"in {duration:.3f}s"
            )
            if duration > SLOW_REQUEST_SECONDS:
                logger.warning(f"SLOW REQUEST: {message}")
            else:
                logger.info(message)
            return response
        finally:
            REQUEST_ID_CTX.reset(token)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to responses."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if not settings.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


# Rate limiter dependency for specific endpoints
class RateLimiter:
    """Rolling-window limit per client IP, stored in the rate_limits table."""

    def __init__(self, action: str, max_attempts: int, window_minutes: int | None = None):
        self.action = action
        self.max_attempts = max_attempts
        self.window_minutes = window_minutes

    async def __call__(
        self,
        request: Request,
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> None:
        """Record the attempt.

        Raises:
            RateLimitExceeded: If the window is already full
        """
        allowed = await rate_limit_service.check_rate_limit(
            db,
            identifier=get_client_ip(request),
            action=self.action,
            max_attempts=self.max_attempts,
            window_minutes=self.window_minutes,
        )
        if not allowed:
            window = self.window_minutes or settings.rate_limit_window_minutes
            raise RateLimitExceeded(retry_after=window * 60)
        # Attempts count even when the request itself fails later
        await db.commit()


# Pre-configured rate limiters for different endpoints
booking_create_limiter = RateLimiter("booking_create", settings.rate_limit_booking_create)
payment_init_limiter = RateLimiter("payment_init", settings.rate_limit_payment_init)
