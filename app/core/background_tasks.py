"""In-process scheduler for the hold-expiry sweep.

Used when no Celery beat is deployed; enable with HOLD_SWEEPER_ENABLED.
"""

import asyncio
import logging

from app.config import settings
from app.database import async_session_maker
from app.services.hold_expiry_service import hold_expiry_service

logger = logging.getLogger(__name__)

# Flag to stop the background task
_stop_hold_sweeper = False


async def run_hold_sweep() -> dict | None:
    """Run one sweep in its own session."""
    async with async_session_maker() as db:
        try:
            return await hold_expiry_service.sweep_expired_holds(db)
        except Exception as e:
            await db.rollback()
            logger.error(f"Hold sweep failed: {e}")
            return None


async def start_hold_sweeper() -> None:
    """Background task that sweeps expired holds on a fixed interval."""
    global _stop_hold_sweeper
    _stop_hold_sweeper = False

    interval = settings.hold_sweep_interval_seconds
    logger.info(f"Hold sweeper started (every {interval}s)")

    while not _stop_hold_sweeper:
        await run_hold_sweep()

        # Sleep in one-second steps so a stop request is noticed quickly
        for _ in range(interval):
            if _stop_hold_sweeper:
                break
            await asyncio.sleep(1)

    logger.info("Hold sweeper stopped")


def stop_hold_sweeper() -> None:
    """Signal the hold sweeper to stop."""
    global _stop_hold_sweeper
    _stop_hold_sweeper = True
