"""Rolling-window rate limiting backed by the rate_limits table."""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.rate_limit import RateLimit

logger = logging.getLogger(__name__)


class RateLimitService:
    """Counts attempts per (identifier, action) inside a rolling window."""

    async def check_rate_limit(
        self,
        db: AsyncSession,
        identifier: str,
        action: str,
        max_attempts: int,
        window_minutes: int | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Record an attempt and report whether it is allowed.

        Args:
            db: Database session
            identifier: Who is acting (IP, user id, email)
            action: Rate-limited action name
            max_attempts: Attempts allowed per window
            window_minutes: Window length, defaults to the configured one
            now: Current time (for tests)

        Returns:
            bool: False when the limit is already reached; the attempt is not recorded then
        """
        now = now or datetime.now(UTC)
        window_start = now - timedelta(minutes=window_minutes or settings.rate_limit_window_minutes)

        result = await db.execute(
            select(func.count(RateLimit.id)).where(
                RateLimit.identifier == identifier,
                RateLimit.action == action,
                RateLimit.created_at >= window_start,
            )
        )
        attempts = result.scalar_one()

        if attempts >= max_attempts:
            logger.warning(f"Rate limit hit: action={action} identifier={identifier} attempts={attempts}")
            return False

        db.add(RateLimit(identifier=identifier, action=action, created_at=now))
        await db.flush()
        return True

    async def cleanup_old_records(
        self,
        db: AsyncSession,
        retention_hours: int | None = None,
        now: datetime | None = None,
    ) -> int:
        """Delete attempt records older than the retention window."""
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(hours=retention_hours or settings.rate_limit_retention_hours)
        result = await db.execute(delete(RateLimit).where(RateLimit.created_at < cutoff))
        deleted = result.rowcount or 0
        if deleted:
            logger.info(f"Pruned {deleted} rate-limit records older than {cutoff.isoformat()}")
        return deleted


rate_limit_service = RateLimitService()
