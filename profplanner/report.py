"""
Plain-text reports meant to be pasted into a message or an e-mail.

- lessons_report: every lesson in a period, with the institute name
- free_time_report: weekday availability in a period (weekends excluded)
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence

from profplanner.freetime import DateLike, SlotKind, derive_free_slots
from profplanner.model import Institute, Lesson
from profplanner.stats import LessonFilter, filter_lessons, sort_lessons

_SLOT_LABELS = {
    SlotKind.FULLY_FREE: "FREE ALL DAY",
    SlotKind.MORNING_FREE: "MORNING FREE",
    SlotKind.AFTERNOON_FREE: "AFTERNOON FREE",
}

_RULE = "-" * 26


def _iso(value: DateLike) -> str:
    return value.isoformat() if isinstance(value, date) else str(value).strip()


def _day_label(iso_date: str) -> str:
    try:
        return date.fromisoformat(iso_date).strftime("%a %d/%m")
    except ValueError:
        return iso_date


def lessons_report(
    lessons: Iterable[Lesson],
    institutes: Iterable[Institute],
    start: DateLike,
    end: DateLike,
    institute_id: Optional[str] = None,
    subject: Optional[str] = None,
) -> str:
    start_s, end_s = _iso(start), _iso(end)
    names = {i.id: i.name for i in institutes}
    selected: Sequence[Lesson] = sort_lessons(
        filter_lessons(
            lessons,
            LessonFilter(institute_id=institute_id, subject=subject, start_date=start_s, end_date=end_s),
        )
    )

    if not selected:
        return "No lessons found for the selected filters."

    lines = ["LESSON REPORT", f"Period: {start_s} - {end_s}", _RULE, ""]
    for lesson in selected:
        inst = names.get(lesson.institute_id or "", "n/a")
        lines.append(f"* {_day_label(lesson.date)} | {lesson.start_time}-{lesson.end_time}")
        lines.append(f"  {lesson.name} ({inst})")
        lines.append("")
    lines.append(f"Total lessons: {len(selected)}")
    return "\n".join(lines)


def free_time_report(lessons: Iterable[Lesson], start: DateLike, end: DateLike) -> str:
    slots = derive_free_slots(lessons, start, end)

    lines = ["AVAILABILITY REPORT", f"Period: {_iso(start)} - {_iso(end)}", "(Saturdays and Sundays excluded)", _RULE, ""]
    for slot in slots:
        lines.append(f"{_day_label(slot.date)}: {_SLOT_LABELS[slot.kind]}")
    if not slots:
        lines.append("No availability in the selected period.")
    return "\n".join(lines)
