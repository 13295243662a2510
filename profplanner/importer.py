"""
Candidate lessons produced outside the app.

The text-to-schedule service turns pasted text (Excel, PDF, e-mail) into a JSON
array of records:

    [{"name": "...", "code": "...", "date": "YYYY-MM-DD",
      "startTime": "HH:MM", "endTime": "HH:MM", "modality": "IN_PERSON", "notes": "..."}]

This module only loads that array. The resulting batch goes through
profplanner.conflicts.validate_batch like any lesson typed in by hand.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from profplanner.model import Lesson, new_id
from profplanner.times import normalize_date

logger = logging.getLogger(__name__)


def candidates_from_records(
    records: Iterable[Any], institute_id: Optional[str] = None
) -> tuple[list[Lesson], int]:
    """
    Turn raw records into new lessons with fresh ids.

    Returns (lessons, skipped) where skipped counts records that were not usable.
    """
    lessons: list[Lesson] = []
    skipped = 0
    for raw in records:
        if not isinstance(raw, dict):
            skipped += 1
            continue
        record = dict(raw)
        # imported ids are never trusted, they would collide with saved lessons
        record["id"] = new_id()
        if institute_id:
            record["instituteId"] = institute_id
        try:
            lesson = Lesson.from_dict(record)
        except ValueError as exc:
            logger.info("Skipping import record: %s", exc)
            skipped += 1
            continue
        # a date in any other shape would never be compared with the saved lessons
        if normalize_date(lesson.date) is None:
            logger.info("Skipping import record with invalid date %r", lesson.date)
            skipped += 1
            continue
        lessons.append(lesson)
    return lessons, skipped


def load_candidates(path: str | Path, institute_id: Optional[str] = None) -> tuple[list[Lesson], int]:
    """
    Read a JSON array of candidate records from a file.

    Raises ValueError if the file is not a JSON array, OSError if it cannot be read.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of lessons")
    return candidates_from_records(data, institute_id=institute_id)
