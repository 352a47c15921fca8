"""Trip statuses."""

from enum import Enum


class TripStatus(str, Enum):
    """Trip lifecycle states."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
