"""
Weekday availability.

For every weekday in a date range, report whether it is completely free, free in
the morning, or free in the afternoon. A lesson belongs to the morning if it
starts before 14:00. Saturdays, Sundays and fully booked days are left out.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Union

from profplanner.model import Lesson
from profplanner.times import start_hour

AFTERNOON_START_HOUR = 14

DateLike = Union[str, date]


class SlotKind(str, Enum):
    FULLY_FREE = "FULLY_FREE"
    MORNING_FREE = "MORNING_FREE"
    AFTERNOON_FREE = "AFTERNOON_FREE"


@dataclass(frozen=True)
class FreeSlot:
    date: str
    kind: SlotKind

    @property
    def weekday(self) -> str:
        return calendar.day_abbr[date.fromisoformat(self.date).weekday()]


def _as_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """
    First and last calendar day of a month.
    """
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def derive_free_slots(lessons: Iterable[Lesson], start_date: DateLike, end_date: DateLike) -> list[FreeSlot]:
    """
    Classify each weekday from start_date to end_date (inclusive), ascending.

    Raises ValueError if a bound is not an ISO date.
    """
    start = _as_date(start_date)
    end = _as_date(end_date)

    by_date: dict[str, list[Lesson]] = defaultdict(list)
    for lesson in lessons:
        by_date[lesson.date].append(lesson)

    slots: list[FreeSlot] = []
    day = start
    while day <= end:
        # Monday=0 .. Sunday=6
        if day.weekday() < 5:
            day_lessons = by_date.get(day.isoformat(), [])
            morning = any(start_hour(l.start_time) < AFTERNOON_START_HOUR for l in day_lessons)
            afternoon = any(start_hour(l.start_time) >= AFTERNOON_START_HOUR for l in day_lessons)

            if not day_lessons:
                slots.append(FreeSlot(day.isoformat(), SlotKind.FULLY_FREE))
            elif afternoon and not morning:
                slots.append(FreeSlot(day.isoformat(), SlotKind.MORNING_FREE))
            elif morning and not afternoon:
                slots.append(FreeSlot(day.isoformat(), SlotKind.AFTERNOON_FREE))
        day += timedelta(days=1)

    return slots
