"""
Merge/apply operations.

Every function takes the current collection and returns a new list; inputs are
never modified. Records that an operation does not touch are passed through as
the same objects.

Failure signalling:
- an update that targets unknown ids returns a failed Result (LessonNotFound)
- a batch that would duplicate an id raises DuplicateLessonId (caller bug)
- deleting an unknown id is a no-op
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from enum import Enum
from typing import Iterable, Optional, Sequence

from profplanner.errors import (
    DuplicateInstituteId,
    DuplicateLessonId,
    InstituteNotFound,
    LessonNotFound,
)
from profplanner.model import Institute, Lesson
from profplanner.result import Result


class MergeOp(str, Enum):
    CREATE = "create"
    UPDATE_MANY = "update_many"
    UPSERT_MANY = "upsert_many"
    DELETE = "delete"
    DELETE_ALL = "delete_all"
    EDIT_SINGLE = "edit_single"


def _check_unique(batch: Sequence[Lesson], taken: Iterable[str]) -> None:
    taken_ids = set(taken)
    counts = Counter(lesson.id for lesson in batch)
    dupes = [lid for lid, n in counts.items() if n > 1 or lid in taken_ids]
    if dupes:
        raise DuplicateLessonId(dupes)


def create(existing: Sequence[Lesson], batch: Sequence[Lesson]) -> list[Lesson]:
    """
    Append a batch of new lessons.

    Precondition: batch ids are fresh. A collision with the collection or inside
    the batch raises DuplicateLessonId and nothing is applied.
    """
    _check_unique(batch, (lesson.id for lesson in existing))
    return list(existing) + list(batch)


def update_many(existing: Sequence[Lesson], batch: Sequence[Lesson]) -> Result[list[Lesson]]:
    """
    Replace lessons by id. Fails with LessonNotFound (nothing applied) if any
    batch id is unknown.
    """
    known = {lesson.id for lesson in existing}
    missing = [lesson.id for lesson in batch if lesson.id not in known]
    if missing:
        err = LessonNotFound(missing)
        return Result.failure(str(err), err)

    by_id = {lesson.id: lesson for lesson in batch}
    return Result.success([by_id.get(lesson.id, lesson) for lesson in existing])


def upsert_many(existing: Sequence[Lesson], batch: Sequence[Lesson]) -> list[Lesson]:
    """
    Replace lessons by id; lessons with unknown ids are appended in batch order.
    """
    by_id = {lesson.id: lesson for lesson in batch}
    known = {lesson.id for lesson in existing}
    out = [by_id.get(lesson.id, lesson) for lesson in existing]

    appended: set[str] = set()
    for lesson in batch:
        if lesson.id in known or lesson.id in appended:
            continue
        # last version of a repeated id wins, like the replace branch
        out.append(by_id[lesson.id])
        appended.add(lesson.id)
    return out


def delete(existing: Sequence[Lesson], lesson_id: str) -> list[Lesson]:
    return [lesson for lesson in existing if lesson.id != lesson_id]


def delete_all(existing: Sequence[Lesson]) -> list[Lesson]:
    return []


def edit_single(
    existing: Sequence[Lesson], original_id: str, batch: Sequence[Lesson]
) -> Result[list[Lesson]]:
    """
    Replace one lesson by a batch of one or more lessons.

    The edit form may turn one lesson into several sessions, so the original
    is removed and the whole batch is appended. The first batch entry may keep
    the original id; all other ids must be fresh.
    """
    if not any(lesson.id == original_id for lesson in existing):
        err = LessonNotFound([original_id])
        return Result.failure(str(err), err)

    remaining = delete(existing, original_id)
    _check_unique(batch, (lesson.id for lesson in remaining))
    return Result.success(remaining + list(batch))


def apply(
    existing: Sequence[Lesson],
    op: MergeOp,
    batch: Sequence[Lesson] = (),
    lesson_id: Optional[str] = None,
) -> Result[list[Lesson]]:
    """
    Single entry point for all lesson merge operations.

    lesson_id is the target of DELETE and the original lesson of EDIT_SINGLE.
    """
    if op == MergeOp.CREATE:
        return Result.success(create(existing, batch))
    if op == MergeOp.UPDATE_MANY:
        return update_many(existing, batch)
    if op == MergeOp.UPSERT_MANY:
        return Result.success(upsert_many(existing, batch))
    if op == MergeOp.DELETE:
        if lesson_id is None:
            raise ValueError("DELETE needs a lesson_id")
        return Result.success(delete(existing, lesson_id))
    if op == MergeOp.DELETE_ALL:
        return Result.success(delete_all(existing))
    if op == MergeOp.EDIT_SINGLE:
        if lesson_id is None:
            raise ValueError("EDIT_SINGLE needs the original lesson_id")
        return edit_single(existing, lesson_id, batch)
    raise ValueError(f"Unknown merge operation: {op!r}")


def set_paid(existing: Sequence[Lesson], lesson_ids: Iterable[str], paid: bool) -> list[Lesson]:
    """
    Mark a selection of lessons as paid (or undo it). Unknown ids are ignored.
    """
    selected = set(lesson_ids)
    return [
        replace(lesson, is_paid=paid) if lesson.id in selected and lesson.is_paid != paid else lesson
        for lesson in existing
    ]


def set_completed(existing: Sequence[Lesson], lesson_id: str, completed: bool) -> Result[list[Lesson]]:
    for lesson in existing:
        if lesson.id == lesson_id:
            return update_many(existing, [replace(lesson, completed=completed)])
    err = LessonNotFound([lesson_id])
    return Result.failure(str(err), err)


# ---------------------------------------------------------------------------
# Institutes
# ---------------------------------------------------------------------------


def add_institute(institutes: Sequence[Institute], institute: Institute) -> list[Institute]:
    if any(i.id == institute.id for i in institutes):
        raise DuplicateInstituteId(institute.id)
    return list(institutes) + [institute]


def update_institute(institutes: Sequence[Institute], institute: Institute) -> Result[list[Institute]]:
    if not any(i.id == institute.id for i in institutes):
        err = InstituteNotFound(institute.id)
        return Result.failure(str(err), err)
    return Result.success([institute if i.id == institute.id else i for i in institutes])


def delete_institute(
    institutes: Sequence[Institute], lessons: Sequence[Lesson], institute_id: str
) -> tuple[list[Institute], list[Lesson]]:
    """
    Remove an institute and detach its lessons (institute_id -> None).
    Lessons are never deleted. Unknown ids are a no-op.
    """
    kept = [i for i in institutes if i.id != institute_id]
    detached = [
        replace(lesson, institute_id=None) if lesson.institute_id == institute_id else lesson
        for lesson in lessons
    ]
    return kept, detached
