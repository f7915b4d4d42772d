"""Tutor progression levels and default hourly rates."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class TutorLevel:
    level: int
    name: str
    min_classes: int
    max_classes: Optional[int]
    default_hourly_rate: float
    description: str


TUTOR_LEVELS: Tuple[TutorLevel, ...] = (
    TutorLevel(1, "Newcomer", 0, 9, 18.00, "Just starting your tutoring journey"),
    TutorLevel(2, "Rising Star", 10, 24, 19.50, "Building experience and confidence"),
    TutorLevel(3, "Experienced", 25, 49, 21.00, "Proven track record of success"),
    TutorLevel(4, "Expert", 50, 99, 23.00, "Highly skilled and sought-after"),
    TutorLevel(5, "Master", 100, None, 25.00, "Elite tutor with exceptional experience"),
)
TOP_LEVEL = TUTOR_LEVELS[-1].level


@dataclass(frozen=True)
class LevelProgress:
    current: TutorLevel
    next: Optional[TutorLevel]
    progress: float
    classes_needed: int


def level_info(level: int) -> TutorLevel:
    """Return the level with that number; unknown numbers map to level 1."""
    for item in TUTOR_LEVELS:
        if item.level == level:
            return item
    return TUTOR_LEVELS[0]


def calculate_level(completed_classes: int) -> int:
    for item in reversed(TUTOR_LEVELS):
        if completed_classes >= item.min_classes:
            return item.level
    return 1


def progress_to_next(completed_classes: int) -> LevelProgress:
    """Progress (0-100) from the current level's floor to the next level's."""
    current = level_info(calculate_level(completed_classes))
    if current.level >= TOP_LEVEL:
        return LevelProgress(current=current, next=None, progress=100.0, classes_needed=0)
    nxt = level_info(current.level + 1)
    span = nxt.min_classes - current.min_classes
    done = completed_classes - current.min_classes
    return LevelProgress(
        current=current,
        next=nxt,
        progress=min(100.0, done / span * 100),
        classes_needed=nxt.min_classes - completed_classes,
    )


def format_currency(amount: float) -> str:
    """US dollar formatting, e.g. `$1,234.50`."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_hours(hours: float) -> str:
    return f"{hours:.1f}"


__all__ = [
    "LevelProgress",
    "TUTOR_LEVELS",
    "TutorLevel",
    "calculate_level",
    "format_currency",
    "format_hours",
    "level_info",
    "progress_to_next",
]
