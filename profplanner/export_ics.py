"""
iCalendar (.ics) export.

We convert lessons into a calendar file that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from profplanner.model import Institute, Lesson, Modality


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(date_yyyy_mm_dd: str, time_hh_mm: str) -> str:
    """
    Convert date + time to ICS local datetime string 'YYYYMMDDTHHMM00'.
    """
    dt = datetime.strptime(f"{date_yyyy_mm_dd} {time_hh_mm}", "%Y-%m-%d %H:%M")
    return dt.strftime("%Y%m%dT%H%M00")


def export_lessons_to_ics(
    lessons: Iterable[Lesson], institutes: Iterable[Institute], out_path: str | Path
) -> int:
    """
    Export lessons to an .ics file. Returns number of exported lessons.
    Lessons whose date or times cannot be read are skipped.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    names = {i.id: i.name for i in institutes}

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//ProfPlanner//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for lesson in lessons:
        try:
            dtstart = _dt_local(lesson.date, lesson.start_time)
            dtend = _dt_local(lesson.date, lesson.end_time)
        except ValueError:
            continue

        inst = names.get(lesson.institute_id or "")
        summary = f"{lesson.name} ({inst})" if inst else lesson.name
        location = "Online" if lesson.modality == Modality.REMOTE else (inst or "")

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(lesson.id)}@profplanner")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{dtstart}")
        lines.append(f"DTEND:{dtend}")
        lines.append(f"SUMMARY:{_ics_escape(summary)}")
        if location:
            lines.append(f"LOCATION:{_ics_escape(location)}")
        if lesson.topics.strip():
            lines.append(f"DESCRIPTION:{_ics_escape(lesson.topics.strip())}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
