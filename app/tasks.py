"""Celery background tasks.

Each task wraps an async service call in its own session:
- Hold expiry sweep
- Trip completion
- Rate-limit pruning
"""

import asyncio
import logging

from celery import shared_task

from app.database import engine, get_db_context
from app.services.hold_expiry_service import hold_expiry_service
from app.services.rate_limit_service import rate_limit_service
from app.services.trip_service import trip_service

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context.

    Each task gets a fresh event loop, so pooled connections from the
    previous loop are dropped afterwards.
    """

    async def _run():
        try:
            return await coro
        finally:
            await engine.dispose()

    return asyncio.run(_run())


# ==================== BOOKING TASKS ====================


@shared_task(bind=True, max_retries=3)
def expire_stale_holds(self):
    """Cancel PENDING bookings whose hold expired, after re-verifying with the gateway."""
    try:
        counts = run_async(_expire_stale_holds())
        return {"status": "success", **counts}
    except Exception as exc:
        logger.error(f"Hold expiry task failed: {exc}")
        raise self.retry(exc=exc, countdown=30)


async def _expire_stale_holds() -> dict:
    async with get_db_context() as db:
        return await hold_expiry_service.sweep_expired_holds(db)


# ==================== TRIP TASKS ====================


@shared_task(bind=True, max_retries=3)
def complete_departed_trips(self):
    """Mark arrived trips and their confirmed bookings as completed."""
    try:
        counts = run_async(_complete_departed_trips())
        return {"status": "success", **counts}
    except Exception as exc:
        logger.error(f"Trip completion task failed: {exc}")
        raise self.retry(exc=exc, countdown=300)


async def _complete_departed_trips() -> dict:
    async with get_db_context() as db:
        return await trip_service.complete_departed_trips(db)


# ==================== CLEANUP TASKS ====================


@shared_task
def cleanup_rate_limits():
    """Delete rate-limit records past the retention window."""
    deleted = run_async(_cleanup_rate_limits())
    return {"status": "success", "deleted": deleted}


async def _cleanup_rate_limits() -> int:
    async with get_db_context() as db:
        return await rate_limit_service.cleanup_old_records(db)
