"""
Local persistent storage for lessons and institutes.

This module manages two files inside the data directory:

    lessons.json
    institutes.json

Design rationale:
- lessons and institutes are saved separately, so editing an institute never rewrites the timetable
- the engine never touches these files; the Planner hands over whole collections after each change

Loading is deliberately defensive: a missing or corrupted file is an empty
collection, and a single broken record is skipped instead of hiding the rest.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from profplanner.errors import StoreError
from profplanner.model import Institute, Lesson

logger = logging.getLogger(__name__)

T = TypeVar("T")

LESSONS_FILE = "lessons.json"
INSTITUTES_FILE = "institutes.json"


def default_data_dir() -> Path:
    """
    Return the default data directory (~/.profplanner).

    Using a function instead of a constant makes testing easier,
    because tests can pass their own directory.
    """
    return Path.home() / ".profplanner"


def _load_records(path: Path, parse: Callable[[Any], T]) -> list[T]:
    # First run: file does not exist yet -> nothing saved
    if not path.exists():
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s (%s), starting empty", path, exc)
        return []

    if not isinstance(data, list):
        logger.warning("Unexpected content in %s, starting empty", path)
        return []

    out: list[T] = []
    for raw in data:
        try:
            out.append(parse(raw))
        except ValueError as exc:
            logger.warning("Skipping malformed record in %s: %s", path, exc)
    return out


def _save_records(path: Path, records: Iterable[Any]) -> None:
    payload = [r.to_dict() for r in records]
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise StoreError(f"Could not write {path}: {exc}") from exc


def load_lessons(path: str | Path) -> list[Lesson]:
    return _load_records(Path(path), Lesson.from_dict)


def save_lessons(lessons: Iterable[Lesson], path: str | Path) -> None:
    _save_records(Path(path), lessons)


def load_institutes(path: str | Path) -> list[Institute]:
    return _load_records(Path(path), Institute.from_dict)


def save_institutes(institutes: Iterable[Institute], path: str | Path) -> None:
    _save_records(Path(path), institutes)


class LocalStore:
    """
    JSON files in one directory. Same interface as profplanner.remote.RemoteStore.
    """

    def __init__(self, data_dir: str | Path | None = None) -> None:
        self.data_dir = Path(data_dir) if data_dir is not None else default_data_dir()

    @property
    def lessons_path(self) -> Path:
        return self.data_dir / LESSONS_FILE

    @property
    def institutes_path(self) -> Path:
        return self.data_dir / INSTITUTES_FILE

    def load_lessons(self) -> list[Lesson]:
        return load_lessons(self.lessons_path)

    def save_lessons(self, lessons: Iterable[Lesson]) -> None:
        save_lessons(lessons, self.lessons_path)

    def load_institutes(self) -> list[Institute]:
        return load_institutes(self.institutes_path)

    def save_institutes(self, institutes: Iterable[Institute]) -> None:
        save_institutes(institutes, self.institutes_path)

    def __repr__(self) -> str:
        return f"LocalStore({str(self.data_dir)!r})"
