"""Booking and payment reference generation utilities."""

import random
import string
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings

REFERENCE_CHARS = string.ascii_uppercase + string.digits


def _random_suffix(length: int = 4) -> str:
    return "".join(random.choices(REFERENCE_CHARS, k=length))


async def generate_booking_reference(db: AsyncSession, prefix: str | None = None) -> str:
    """Generate a unique booking reference.

    Args:
        db: Database session for uniqueness check
        prefix: Reference prefix, defaults to the configured one

    Returns:
        str: Unique reference like 'BK-250114093012-A3B7'
    """
    from app.models.booking import Booking

    prefix = prefix or settings.booking_reference_prefix

    while True:
        timestamp = datetime.now(UTC).strftime("%y%m%d%H%M%S")
        reference = f"{prefix}-{timestamp}-{_random_suffix()}"

        # Check uniqueness
        result = await db.execute(
            select(Booking.id).where(Booking.booking_reference == reference)
        )
        if result.scalar_one_or_none() is None:
            return reference


def generate_payment_reference(booking_reference: str) -> str:
    """Generate a gateway-facing payment reference.

    Returns:
        str: Reference like 'PAY_BK-250114093012-A3B7_1736847012345_K9M2'
    """
    millis = int(datetime.now(UTC).timestamp() * 1000)
    return f"PAY_{booking_reference}_{millis}_{_random_suffix()}"
