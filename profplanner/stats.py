"""
Aggregation: lesson counts, teaching time and earnings over a filtered set of lessons.

Month/year filtering reads the numbers straight out of the 'YYYY-MM-DD' string,
so a lesson on the first or last day of a month is never shifted by a timezone.

Earnings per lesson:
- no institute, or institute without a rate -> 0
- PER_LESSON -> the rate, whatever the duration
- HOURLY     -> rate * minutes / 60
Inverted time ranges count as 0 minutes (and so 0 hourly earnings).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Optional, Sequence

from profplanner.model import Institute, Lesson, RateType
from profplanner.times import date_parts, duration_minutes


@dataclass(frozen=True)
class LessonFilter:
    """
    Every criterion that is set must match. start_date/end_date are inclusive
    'YYYY-MM-DD' bounds; paid selects the to-pay (False) or paid (True) side.
    """

    institute_id: Optional[str] = None
    subject: Optional[str] = None
    month: Optional[int] = None
    year: Optional[int] = None
    paid: Optional[bool] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def matches(self, lesson: Lesson) -> bool:
        if self.institute_id and lesson.institute_id != self.institute_id:
            return False
        if self.subject and lesson.name != self.subject:
            return False
        if self.paid is not None and lesson.is_paid != self.paid:
            return False
        if self.month is not None or self.year is not None:
            parts = date_parts(lesson.date)
            if parts is None:
                return False
            year, month, _ = parts
            if self.year is not None and year != self.year:
                return False
            if self.month is not None and month != self.month:
                return False
        # ISO strings compare in calendar order
        if self.start_date and lesson.date < self.start_date:
            return False
        if self.end_date and lesson.date > self.end_date:
            return False
        return True


@dataclass(frozen=True)
class Summary:
    count: int = 0
    total_minutes: int = 0
    total_earnings: float = 0.0

    @property
    def hours_minutes(self) -> tuple[int, int]:
        return divmod(self.total_minutes, 60)


def filter_lessons(lessons: Iterable[Lesson], lesson_filter: Optional[LessonFilter] = None) -> list[Lesson]:
    if lesson_filter is None:
        return list(lessons)
    return [lesson for lesson in lessons if lesson_filter.matches(lesson)]


def lesson_earnings(lesson: Lesson, institute: Optional[Institute]) -> float:
    if institute is None or not institute.default_rate:
        return 0.0
    if institute.rate_type == RateType.PER_LESSON:
        return float(institute.default_rate)
    minutes = duration_minutes(lesson.start_time, lesson.end_time)
    return institute.default_rate * (minutes / 60)


def _index(institutes: Iterable[Institute]) -> Mapping[str, Institute]:
    return {i.id: i for i in institutes}


def aggregate(
    lessons: Iterable[Lesson],
    institutes: Iterable[Institute],
    lesson_filter: Optional[LessonFilter] = None,
) -> Summary:
    by_id = _index(institutes)

    count = 0
    minutes = 0
    earnings = 0.0
    # summed in collection order so repeated runs give identical floats
    for lesson in filter_lessons(lessons, lesson_filter):
        inst = by_id.get(lesson.institute_id) if lesson.institute_id else None
        count += 1
        minutes += duration_minutes(lesson.start_time, lesson.end_time)
        earnings += lesson_earnings(lesson, inst)

    return Summary(count=count, total_minutes=minutes, total_earnings=earnings)


def payment_summary(
    lessons: Sequence[Lesson],
    institutes: Sequence[Institute],
    lesson_filter: Optional[LessonFilter] = None,
) -> dict[str, Summary]:
    """
    Split the filtered lessons into what is still owed and what is settled.
    """
    base = lesson_filter or LessonFilter()
    return {
        "to_pay": aggregate(lessons, institutes, replace(base, paid=False)),
        "paid": aggregate(lessons, institutes, replace(base, paid=True)),
    }


def sort_lessons(lessons: Iterable[Lesson], by: str = "date") -> list[Lesson]:
    if by == "name":
        return sorted(lessons, key=lambda lesson: (lesson.name.lower(), lesson.date, lesson.start_time))
    if by == "date":
        return sorted(lessons, key=lambda lesson: (lesson.date, lesson.start_time))
    raise ValueError(f"Unknown sort key: {by!r}")


def subjects(lessons: Iterable[Lesson]) -> list[str]:
    return sorted({lesson.name for lesson in lessons})


def lessons_on(lessons: Iterable[Lesson], date: str) -> list[Lesson]:
    return sorted((lesson for lesson in lessons if lesson.date == date), key=lambda lesson: lesson.start_time)
