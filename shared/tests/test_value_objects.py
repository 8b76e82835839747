"""Tests for DateRange and amount rounding."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import DateRange, quantize_amount


def test_adjacent_ranges_do_not_overlap():
    first = DateRange(date(2024, 1, 1), date(2024, 1, 5))
    second = DateRange(date(2024, 1, 5), date(2024, 1, 8))

    assert not first.overlaps_with(second)
    assert not second.overlaps_with(first)


def test_intersecting_ranges_overlap():
    first = DateRange(date(2024, 1, 1), date(2024, 1, 5))
    second = DateRange(date(2024, 1, 4), date(2024, 1, 8))

    assert first.overlaps_with(second)


def test_empty_or_reversed_range_is_rejected():
    with pytest.raises(ValidationError):
        DateRange(date(2024, 1, 5), date(2024, 1, 5))
    with pytest.raises(ValidationError):
        DateRange(date(2024, 1, 5), date(2024, 1, 1))


def test_contains_is_half_open():
    stay = DateRange(date(2024, 1, 1), date(2024, 1, 3))

    assert stay.contains(date(2024, 1, 1))
    assert stay.contains(date(2024, 1, 2))
    assert not stay.contains(date(2024, 1, 3))
    assert len(stay) == 2
    assert str(stay) == "[2024-01-01, 2024-01-03)"


def test_shift_and_extension():
    stay = DateRange(date(2024, 1, 1), date(2024, 1, 3))

    assert stay.shift(2) == DateRange(date(2024, 1, 3), date(2024, 1, 5))
    assert stay.extension_to(date(2024, 1, 8)) == DateRange(date(2024, 1, 3), date(2024, 1, 8))
    with pytest.raises(ValidationError):
        stay.extension_to(date(2024, 1, 3))


def test_quantize_amount_rounds_half_up():
    assert quantize_amount("10.005") == Decimal("10.01")
    assert quantize_amount(3) == Decimal("3.00")
