"""
Exception types shared by the engine, the stores and the CLI.
"""

from __future__ import annotations

from typing import Iterable


class ScheduleError(Exception):
    """Base class for engine errors."""


class DuplicateLessonId(ScheduleError, ValueError):
    """A batch would put two lessons with the same id into one collection."""

    def __init__(self, ids: Iterable[str]) -> None:
        self.ids = sorted(set(ids))
        super().__init__(f"Duplicate lesson id(s): {', '.join(self.ids)}")


class LessonNotFound(ScheduleError, LookupError):
    """An update targets lesson ids that are not in the collection."""

    def __init__(self, ids: Iterable[str]) -> None:
        self.missing_ids = sorted(set(ids))
        super().__init__(f"Lesson(s) not found: {', '.join(self.missing_ids)}")


class DuplicateInstituteId(ScheduleError, ValueError):
    def __init__(self, institute_id: str) -> None:
        self.institute_id = institute_id
        super().__init__(f"Duplicate institute id: {institute_id}")


class InstituteNotFound(ScheduleError, LookupError):
    def __init__(self, institute_id: str) -> None:
        self.institute_id = institute_id
        super().__init__(f"Institute not found: {institute_id}")


class StoreError(Exception):
    """A durable read or write failed (file system or remote backend)."""
