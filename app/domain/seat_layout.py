"""Seat label generation for vehicle layouts.

- front_row: one front seat (A1) then a single back row (B1..Bn-1)
- grid4: four seats per row (A1..A4, B1..B4, ...)
"""

import string
from enum import Enum

from app.core.exceptions import ValidationError

SEATS_PER_GRID_ROW = 4


class SeatLayout(str, Enum):
    """Supported seat layouts."""

    FRONT_ROW = "front_row"
    GRID4 = "grid4"


def _front_row_labels(capacity: int) -> list[str]:
    return ["A1"] + [f"B{n}" for n in range(1, capacity)]


def _grid4_labels(capacity: int) -> list[str]:
    rows = string.ascii_uppercase
    if capacity > len(rows) * SEATS_PER_GRID_ROW:
        raise ValidationError(f"Capacity {capacity} exceeds the grid4 layout limit")
    return [
        f"{rows[i // SEATS_PER_GRID_ROW]}{i % SEATS_PER_GRID_ROW + 1}"
        for i in range(capacity)
    ]


def generate_seat_labels(capacity: int, layout: str | SeatLayout) -> list[str]:
    """Generate the ordered seat labels for a vehicle.

    Args:
        capacity: Number of passenger seats
        layout: Layout name

    Returns:
        list[str]: Exactly `capacity` unique labels
    """
    if capacity < 1:
        raise ValidationError("Capacity must be at least 1")

    try:
        layout = SeatLayout(layout)
    except ValueError:
        raise ValidationError(f"Unknown seat layout: {layout}")

    if layout == SeatLayout.GRID4:
        return _grid4_labels(capacity)
    return _front_row_labels(capacity)


def seat_sort_key(label: str) -> tuple[str, int]:
    """Sort key so B10 comes after B9."""
    return label[0], int(label[1:]) if label[1:].isdigit() else 0
