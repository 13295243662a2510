"""
Planner: the caller-side owner of the lesson and institute collections.

The engine modules (conflicts, merge, stats, freetime) are pure functions. The
Planner threads the current collections through them and hands every new
collection to a store (LocalStore or RemoteStore).

Write model:
1. validate the batch and apply the configured ConflictPolicy
2. apply the merge locally (the in-memory state changes immediately)
3. write to the store; a failed write is logged and reported in
   SaveOutcome.write_error, the local state is kept

Confirming a pending save (warn policy) merges the batch as it was validated.
It is NOT checked again, even if the collection changed in between.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from profplanner.conflicts import (
    ConflictPolicy,
    ConflictReport,
    SaveDecision,
    decide,
    find_pairwise_conflicts,
    validate_batch,
)
from profplanner.errors import StoreError
from profplanner.freetime import DateLike, FreeSlot, derive_free_slots
from profplanner.merge import (
    MergeOp,
    add_institute,
    apply,
    delete_institute,
    set_completed,
    set_paid,
    update_institute,
)
from profplanner.model import Institute, Lesson
from profplanner.result import Result
from profplanner.stats import LessonFilter, Summary, aggregate, lessons_on, payment_summary, sort_lessons

logger = logging.getLogger(__name__)

INSTITUTE_COLORS = [
    "#38bdf8",
    "#f472b6",
    "#a78bfa",
    "#34d399",
    "#fbbf24",
    "#f87171",
    "#a3e635",
    "#22d3ee",
]


class SaveStatus(str, Enum):
    SAVED = "saved"
    BLOCKED = "blocked"
    NEEDS_CONFIRMATION = "needs_confirmation"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class PendingSave:
    """
    A validated batch waiting for the user's confirmation.
    """

    op: MergeOp
    batch: tuple[Lesson, ...]
    original_id: Optional[str] = None


@dataclass(frozen=True)
class SaveOutcome:
    status: SaveStatus
    report: ConflictReport = ConflictReport()
    pending: Optional[PendingSave] = None
    write_error: Optional[str] = None
    missing_ids: tuple[str, ...] = ()

    @property
    def saved(self) -> bool:
        return self.status == SaveStatus.SAVED


class Planner:
    def __init__(
        self,
        store: Any = None,
        policy: ConflictPolicy = ConflictPolicy.BLOCK,
        lessons: Iterable[Lesson] = (),
        institutes: Iterable[Institute] = (),
    ) -> None:
        self.store = store
        self.policy = policy
        self._lessons: list[Lesson] = list(lessons)
        self._institutes: list[Institute] = list(institutes)

    @classmethod
    def open(cls, store: Any, policy: ConflictPolicy = ConflictPolicy.BLOCK) -> "Planner":
        """
        Load both collections from a store. StoreError propagates.
        """
        return cls(store=store, policy=policy, lessons=store.load_lessons(), institutes=store.load_institutes())

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def lessons(self) -> tuple[Lesson, ...]:
        return tuple(self._lessons)

    @property
    def institutes(self) -> tuple[Institute, ...]:
        return tuple(self._institutes)

    def lesson(self, lesson_id: str) -> Optional[Lesson]:
        return next((l for l in self._lessons if l.id == lesson_id), None)

    def institute(self, institute_id: Optional[str]) -> Optional[Institute]:
        if not institute_id:
            return None
        return next((i for i in self._institutes if i.id == institute_id), None)

    def next_color(self) -> str:
        return INSTITUTE_COLORS[len(self._institutes) % len(INSTITUTE_COLORS)]

    def summary(self, lesson_filter: Optional[LessonFilter] = None) -> Summary:
        return aggregate(self._lessons, self._institutes, lesson_filter)

    def payments(self, lesson_filter: Optional[LessonFilter] = None) -> dict[str, Summary]:
        return payment_summary(self._lessons, self._institutes, lesson_filter)

    def free_slots(self, start: DateLike, end: DateLike) -> list[FreeSlot]:
        return derive_free_slots(self._lessons, start, end)

    def audit(self) -> list[tuple[Lesson, Lesson]]:
        """
        Overlapping pairs already in the saved collection (possible after confirmed warnings).
        """
        return find_pairwise_conflicts(sort_lessons(self._lessons))

    def upcoming(self, today: Optional[date] = None) -> list[Lesson]:
        """
        Lessons of the day after `today` (default: the real today).
        """
        tomorrow = (today or date.today()) + timedelta(days=1)
        return lessons_on(self._lessons, tomorrow.isoformat())

    # ------------------------------------------------------------------
    # Validated lesson saves
    # ------------------------------------------------------------------

    def add_lessons(self, batch: Sequence[Lesson]) -> SaveOutcome:
        return self._propose(PendingSave(MergeOp.CREATE, tuple(batch)), self._lessons)

    def edit_lesson(self, original_id: str, batch: Sequence[Lesson]) -> SaveOutcome:
        """
        Replace one saved lesson by one or more sessions.
        """
        if self.lesson(original_id) is None:
            return SaveOutcome(SaveStatus.NOT_FOUND, missing_ids=(original_id,))
        pending = PendingSave(MergeOp.EDIT_SINGLE, tuple(batch), original_id)
        return self._propose(pending, self._lessons, editing_id=original_id)

    def update_lessons(self, batch: Sequence[Lesson]) -> SaveOutcome:
        ids = {l.id for l in batch}
        known = {l.id for l in self._lessons}
        missing = tuple(sorted(ids - known))
        if missing:
            return SaveOutcome(SaveStatus.NOT_FOUND, missing_ids=missing)
        # the saved versions of the updated lessons are being replaced
        others = [l for l in self._lessons if l.id not in ids]
        return self._propose(PendingSave(MergeOp.UPDATE_MANY, tuple(batch)), others)

    def confirm(self, pending: PendingSave) -> SaveOutcome:
        """
        Commit a save the user confirmed despite conflicts (warn policy only).
        """
        if self.policy != ConflictPolicy.WARN_AND_CONFIRM:
            raise ValueError("Saves cannot be confirmed under the blocking conflict policy")
        logger.info("Confirmed %s of %d lesson(s) without re-validation", pending.op.value, len(pending.batch))
        return self._apply_pending(pending, ConflictReport())

    def _propose(
        self, pending: PendingSave, population: Sequence[Lesson], editing_id: Optional[str] = None
    ) -> SaveOutcome:
        report = validate_batch(pending.batch, population, editing_id=editing_id)
        decision = decide(report, self.policy)

        if decision == SaveDecision.BLOCK:
            logger.warning("Save blocked: %d conflict(s)", len(report))
            return SaveOutcome(SaveStatus.BLOCKED, report=report)
        if decision == SaveDecision.CONFIRM:
            return SaveOutcome(SaveStatus.NEEDS_CONFIRMATION, report=report, pending=pending)
        return self._apply_pending(pending, report)

    def _apply_pending(self, pending: PendingSave, report: ConflictReport) -> SaveOutcome:
        result = apply(self._lessons, pending.op, pending.batch, lesson_id=pending.original_id)
        return self._finish(result, report=report)

    # ------------------------------------------------------------------
    # Direct lesson changes (no time change, no validation needed)
    # ------------------------------------------------------------------

    def delete_lesson(self, lesson_id: str) -> SaveOutcome:
        return self._finish(apply(self._lessons, MergeOp.DELETE, lesson_id=lesson_id))

    def delete_all(self) -> SaveOutcome:
        return self._finish(apply(self._lessons, MergeOp.DELETE_ALL))

    def mark_paid(self, lesson_ids: Iterable[str], paid: bool = True) -> SaveOutcome:
        return self._finish(Result.success(set_paid(self._lessons, lesson_ids, paid)))

    def set_completed(self, lesson_id: str, completed: bool = True) -> SaveOutcome:
        return self._finish(set_completed(self._lessons, lesson_id, completed))

    def _finish(self, result: Result[list[Lesson]], report: ConflictReport = ConflictReport()) -> SaveOutcome:
        if result.is_failure:
            missing = tuple(getattr(result.error, "missing_ids", ()))
            return SaveOutcome(SaveStatus.NOT_FOUND, report=report, missing_ids=missing)
        write_error = self._commit(lessons=result.unwrap())
        return SaveOutcome(SaveStatus.SAVED, report=report, write_error=write_error)

    # ------------------------------------------------------------------
    # Institutes
    # ------------------------------------------------------------------

    def add_institute(self, institute: Institute) -> SaveOutcome:
        institutes = add_institute(self._institutes, institute)
        return SaveOutcome(SaveStatus.SAVED, write_error=self._commit(institutes=institutes))

    def update_institute(self, institute: Institute) -> SaveOutcome:
        result = update_institute(self._institutes, institute)
        if result.is_failure:
            return SaveOutcome(SaveStatus.NOT_FOUND, missing_ids=(institute.id,))
        return SaveOutcome(SaveStatus.SAVED, write_error=self._commit(institutes=result.unwrap()))

    def delete_institute(self, institute_id: str) -> SaveOutcome:
        institutes, lessons = delete_institute(self._institutes, self._lessons, institute_id)
        return SaveOutcome(SaveStatus.SAVED, write_error=self._commit(lessons=lessons, institutes=institutes))

    # ------------------------------------------------------------------

    def _commit(
        self, lessons: Optional[list[Lesson]] = None, institutes: Optional[list[Institute]] = None
    ) -> Optional[str]:
        """
        Replace local state, then write it out. Returns the write error, if any.
        """
        if lessons is not None:
            self._lessons = lessons
        if institutes is not None:
            self._institutes = institutes
        logger.info("Committed %d lesson(s), %d institute(s)", len(self._lessons), len(self._institutes))

        if self.store is None:
            return None
        try:
            if lessons is not None:
                self.store.save_lessons(self._lessons)
            if institutes is not None:
                self.store.save_institutes(self._institutes)
        except StoreError as exc:
            logger.warning("Durable write failed, keeping local changes: %s", exc)
            return str(exc)
        return None
