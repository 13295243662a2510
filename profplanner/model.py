"""
Central data model definitions used across the project.

This module defines the canonical structure of Lesson and Institute objects so that:
- the engine, the stores and the CLI share the same field names
- records loaded from JSON (local file, REST backend, import files) are parsed in one place
- malformed input degrades to safe defaults instead of crashing a half-filled form

Records are frozen: every change goes through profplanner.merge and produces new objects.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from profplanner.times import normalize_date, normalize_time


class Modality(str, Enum):
    IN_PERSON = "IN_PERSON"
    REMOTE = "REMOTE"


class RateType(str, Enum):
    HOURLY = "HOURLY"
    PER_LESSON = "PER_LESSON"


# Values written by older versions of the app
_LEGACY_MODALITIES = {
    "PRESENZA": Modality.IN_PERSON,
    "DAD": Modality.REMOTE,
}

DEFAULT_COLOR = "#94a3b8"


def new_id() -> str:
    """
    Return a fresh opaque identifier for a lesson or institute.
    """
    return uuid.uuid4().hex


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def parse_modality(value: Any) -> Modality:
    """
    Map stored modality values (including legacy ones) to Modality.
    Unknown or empty values fall back to IN_PERSON.
    """
    raw = _text(value).upper()
    if raw in _LEGACY_MODALITIES:
        return _LEGACY_MODALITIES[raw]
    try:
        return Modality(raw)
    except ValueError:
        return Modality.IN_PERSON


def parse_rate_type(value: Any) -> RateType:
    raw = _text(value).upper()
    try:
        return RateType(raw)
    except ValueError:
        return RateType.HOURLY


def parse_rate(value: Any) -> Optional[float]:
    """
    Parse a rate typed as free text ("20", "20,50", " 18.5 ").
    Returns None for empty or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    raw = _text(value).replace(",", ".")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class Lesson:
    """
    One scheduled teaching session (single date & time range).

    date is an ISO 'YYYY-MM-DD' string and start_time/end_time are 'HH:MM'.
    They are kept as text so a record being edited never fails to load.
    """

    id: str
    name: str
    date: str
    start_time: str
    end_time: str
    modality: Modality = Modality.IN_PERSON
    code: str = ""
    institute_id: Optional[str] = None
    completed: bool = False
    is_paid: bool = False
    topics: str = ""
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "instituteId": self.institute_id,
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "modality": self.modality.value,
            "completed": self.completed,
            "isPaid": self.is_paid,
            "topics": self.topics,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Lesson":
        """
        Build a Lesson from a stored record.

        Raises ValueError if the record is not a mapping or has no name/date.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Lesson record must be a mapping, got {type(data).__name__}")

        name = _text(data.get("name"))
        date = _text(data.get("date"))
        if not name or not date:
            raise ValueError(f"Lesson record needs a name and a date: {dict(data)!r}")

        start_time = _text(data.get("startTime"))
        end_time = _text(data.get("endTime"))
        institute_id = _text(data.get("instituteId")) or None
        # readable values are stored in canonical form so that string compares work;
        # unreadable ones are kept as typed and count as malformed downstream
        return cls(
            id=_text(data.get("id")) or new_id(),
            name=name,
            date=normalize_date(date) or date,
            start_time=normalize_time(start_time) or start_time,
            end_time=normalize_time(end_time) or end_time,
            modality=parse_modality(data.get("modality")),
            code=_text(data.get("code")),
            institute_id=institute_id,
            completed=_flag(data.get("completed", False)),
            is_paid=_flag(data.get("isPaid", False)),
            topics=_text(data.get("topics")),
            notes=_text(data.get("notes")),
        )


@dataclass(frozen=True)
class Institute:
    """
    An organisation a lesson may belong to, carrying an optional pay rate.
    """

    id: str
    name: str
    color: str = DEFAULT_COLOR
    default_rate: Optional[float] = None
    rate_type: RateType = RateType.HOURLY

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "id": data["id"],
            "name": data["name"],
            "color": data["color"],
            "defaultRate": data["default_rate"],
            "rateType": self.rate_type.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Institute":
        if not isinstance(data, Mapping):
            raise ValueError(f"Institute record must be a mapping, got {type(data).__name__}")

        name = _text(data.get("name"))
        if not name:
            raise ValueError(f"Institute record needs a name: {dict(data)!r}")

        return cls(
            id=_text(data.get("id")) or new_id(),
            name=name,
            color=_text(data.get("color")) or DEFAULT_COLOR,
            default_rate=parse_rate(data.get("defaultRate")),
            rate_type=parse_rate_type(data.get("rateType")),
        )
