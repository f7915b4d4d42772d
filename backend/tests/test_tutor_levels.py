"""Tutor level thresholds, progress and formatting helpers."""
from __future__ import annotations

import pytest

from backend.profiles.tutor_levels import (
    TUTOR_LEVELS,
    calculate_level,
    format_currency,
    format_hours,
    level_info,
    progress_to_next,
)


@pytest.mark.parametrize(
    "classes,level",
    [(0, 1), (9, 1), (10, 2), (24, 2), (25, 3), (49, 3), (50, 4), (99, 4), (100, 5), (1000, 5)],
)
def test_calculate_level_boundaries(classes, level):
    assert calculate_level(classes) == level


def test_levels_are_contiguous():
    for lower, upper in zip(TUTOR_LEVELS, TUTOR_LEVELS[1:]):
        assert lower.max_classes is not None
        assert lower.max_classes + 1 == upper.min_classes
    assert TUTOR_LEVELS[-1].max_classes is None


def test_unknown_level_falls_back_to_first():
    assert level_info(42).level == 1
    assert level_info(3).name == "Experienced"


def test_progress_within_level():
    info = progress_to_next(17)
    assert info.current.level == 2
    assert info.next is not None and info.next.level == 3
    assert info.classes_needed == 8
    assert info.progress == pytest.approx(7 / 15 * 100)


def test_progress_at_top_level():
    info = progress_to_next(150)
    assert info.next is None
    assert info.progress == 100.0
    assert info.classes_needed == 0


def test_formatting():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-3) == "-$3.00"
    assert format_hours(2) == "2.0"
