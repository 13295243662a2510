"""
Conflict detection and save policy.

Two lessons conflict if they are on the same date AND their time ranges overlap
(half-open intervals, see profplanner.times). Touching endpoints (end == start)
are not a conflict, and a zero-length lesson never conflicts.

validate_batch() only reports. What happens next is decided by the configured
ConflictPolicy:
- BLOCK: any conflict refuses the whole save
- WARN_AND_CONFIRM: conflicts are shown and the user may confirm the save anyway
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional, Sequence

from profplanner.model import Lesson
from profplanner.times import intervals_overlap, to_minutes


class ConflictKind(str, Enum):
    INTERNAL = "INTERNAL"  # both lessons are in the proposed batch
    EXTERNAL = "EXTERNAL"  # proposed lesson vs. an already saved one


class ConflictPolicy(str, Enum):
    BLOCK = "block"
    WARN_AND_CONFIRM = "warn"


class SaveDecision(str, Enum):
    ALLOW = "allow"
    BLOCK = "block"
    CONFIRM = "confirm"


def lessons_overlap(a: Lesson, b: Lesson) -> bool:
    if a.date != b.date:
        return False
    return intervals_overlap(
        to_minutes(a.start_time),
        to_minutes(a.end_time),
        to_minutes(b.start_time),
        to_minutes(b.end_time),
    )


def find_conflicts(
    candidate: Lesson, population: Iterable[Lesson], exclude_ids: Iterable[str] = ()
) -> list[Lesson]:
    """
    Return every lesson of population that overlaps candidate, in population order.

    The candidate's own id and all exclude_ids are skipped, so an edited lesson
    never conflicts with its previous version.
    """
    excluded = set(exclude_ids)
    excluded.add(candidate.id)
    return [other for other in population if other.id not in excluded and lessons_overlap(candidate, other)]


def find_pairwise_conflicts(lessons: Sequence[Lesson]) -> list[tuple[Lesson, Lesson]]:
    """
    Find overlapping lesson pairs (A,B), each pair appears once (i<j).
    """
    conflicts: list[tuple[Lesson, Lesson]] = []

    # O(n^2) is fine for a personal timetable
    for i in range(len(lessons)):
        for j in range(i + 1, len(lessons)):
            if lessons_overlap(lessons[i], lessons[j]):
                conflicts.append((lessons[i], lessons[j]))

    return conflicts


@dataclass(frozen=True)
class Conflict:
    """
    One reported conflict: `lesson` is from the proposed batch, `other` is the
    lesson it collides with (a later batch entry for INTERNAL, a saved one for EXTERNAL).
    """

    kind: ConflictKind
    lesson: Lesson
    other: Lesson

    @property
    def date(self) -> str:
        return self.lesson.date

    @property
    def lesson_name(self) -> str:
        return self.lesson.name

    @property
    def other_name(self) -> str:
        return self.other.name

    @property
    def lesson_range(self) -> str:
        return f"{self.lesson.start_time}-{self.lesson.end_time}"

    @property
    def other_range(self) -> str:
        return f"{self.other.start_time}-{self.other.end_time}"

    def describe(self) -> str:
        if self.kind == ConflictKind.INTERNAL:
            return (
                f"INTERNAL: {self.date} {self.lesson_range} {self.lesson_name} "
                f"overlaps {self.other_range} {self.other_name}"
            )
        return (
            f"CONFLICT: {self.date} {self.lesson_range} {self.lesson_name} "
            f"vs saved \"{self.other_name}\" ({self.other_range})"
        )


@dataclass(frozen=True)
class ConflictReport:
    conflicts: tuple[Conflict, ...] = ()

    def __len__(self) -> int:
        return len(self.conflicts)

    def __iter__(self) -> Iterator[Conflict]:
        return iter(self.conflicts)

    def __bool__(self) -> bool:
        return bool(self.conflicts)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def internal(self) -> list[Conflict]:
        return [c for c in self.conflicts if c.kind == ConflictKind.INTERNAL]

    @property
    def external(self) -> list[Conflict]:
        return [c for c in self.conflicts if c.kind == ConflictKind.EXTERNAL]

    def summary(self, limit: int = 6) -> list[str]:
        """
        Human readable lines, at most `limit` of them plus an "... and N more" line.
        """
        lines = [c.describe() for c in self.conflicts[:limit]]
        rest = len(self.conflicts) - limit
        if rest > 0:
            lines.append(f"... and {rest} more.")
        return lines


def validate_batch(
    batch: Sequence[Lesson], existing: Iterable[Lesson], editing_id: Optional[str] = None
) -> ConflictReport:
    """
    Check a proposed batch against itself and against the saved lessons.

    editing_id: id of the lesson being edited; its saved version is ignored.
    """
    found: list[Conflict] = []

    if len(batch) > 1:
        for a, b in find_pairwise_conflicts(batch):
            found.append(Conflict(ConflictKind.INTERNAL, a, b))

    saved = list(existing)
    exclude = [editing_id] if editing_id else []
    for lesson in batch:
        for other in find_conflicts(lesson, saved, exclude):
            found.append(Conflict(ConflictKind.EXTERNAL, lesson, other))

    return ConflictReport(tuple(found))


def decide(report: ConflictReport, policy: ConflictPolicy) -> SaveDecision:
    if not report:
        return SaveDecision.ALLOW
    if policy == ConflictPolicy.BLOCK:
        return SaveDecision.BLOCK
    return SaveDecision.CONFIRM
