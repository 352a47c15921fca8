"""Cancellation refund tiers.

Tiers (hours before departure):
- 24h or more: full refund minus a 10% cancellation fee
- 12h to 24h: 50% refund
- under 12h: no refund
"""

from datetime import datetime
from decimal import Decimal

# Refund rules: list of (min_hours_before_departure, refund_percentage)
# Evaluated in order - first match wins
REFUND_TIERS: list[tuple[int, Decimal]] = [
    (24, Decimal("90")),
    (12, Decimal("50")),
    (0, Decimal("0")),
]


def hours_until_departure(departure_time: datetime, cancelled_at: datetime) -> Decimal:
    seconds = Decimal(str((departure_time - cancelled_at).total_seconds()))
    return seconds / Decimal("3600")


def calculate_refund_percentage(departure_time: datetime, cancelled_at: datetime) -> Decimal:
    """Calculate refund percentage for a cancellation.

    Args:
        departure_time: Trip departure timestamp
        cancelled_at: When the cancellation happens

    Returns:
        Decimal: Refund percentage (0-100)
    """
    hours_before = hours_until_departure(departure_time, cancelled_at)

    for min_hours, refund_pct in REFUND_TIERS:
        if hours_before >= min_hours:
            return refund_pct

    return Decimal("0")


def calculate_refund_amount(
    departure_time: datetime,
    cancelled_at: datetime,
    amount_paid: int,
) -> int:
    """Calculate refund amount in minor currency units.

    Args:
        departure_time: Trip departure timestamp
        cancelled_at: When the cancellation happens
        amount_paid: Amount actually paid, in minor units

    Returns:
        int: Refund amount in minor units
    """
    refund_pct = calculate_refund_percentage(departure_time, cancelled_at)
    refund_amount = (Decimal(amount_paid) * refund_pct / Decimal("100")).quantize(Decimal("1"))
    return int(refund_amount)


def get_policy_description() -> str:
    """Get human-readable policy description."""
    return (
        "Full refund minus a 10% fee up to 24 hours before departure. "
        "50% refund between 12 and 24 hours before departure. "
        "No refund less than 12 hours before departure."
    )
