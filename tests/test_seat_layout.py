"""Seat label generation."""

import pytest

from app.core.exceptions import ValidationError
from app.domain.seat_layout import SeatLayout, generate_seat_labels, seat_sort_key


def test_front_row_layout_has_one_front_seat():
    assert generate_seat_labels(4, SeatLayout.FRONT_ROW) == ["A1", "B1", "B2", "B3"]


def test_front_row_single_seat():
    assert generate_seat_labels(1, "front_row") == ["A1"]


def test_grid4_layout_fills_rows_of_four():
    assert generate_seat_labels(6, "grid4") == ["A1", "A2", "A3", "A4", "B1", "B2"]


def test_labels_are_unique_and_capped_at_capacity():
    labels = generate_seat_labels(18, SeatLayout.GRID4)
    assert len(labels) == 18
    assert len(set(labels)) == 18


def test_generation_is_deterministic():
    assert generate_seat_labels(7, "front_row") == generate_seat_labels(7, "front_row")


@pytest.mark.parametrize("capacity", [0, -3])
def test_capacity_must_be_positive(capacity):
    with pytest.raises(ValidationError):
        generate_seat_labels(capacity, "front_row")


def test_unknown_layout_rejected():
    with pytest.raises(ValidationError):
        generate_seat_labels(4, "double_decker")


def test_grid4_capacity_limit():
    with pytest.raises(ValidationError):
        generate_seat_labels(105, "grid4")


def test_seat_sort_key_orders_numerically():
    assert sorted(["B10", "B2", "A1", "B1"], key=seat_sort_key) == ["A1", "B1", "B2", "B10"]
