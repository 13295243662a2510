"""
Unit tests for merge/apply operations.

Contract:
- inputs are never modified, untouched lessons come back unchanged
- update of an unknown id fails with LessonNotFound and applies nothing
- create/edit with a duplicate id raises DuplicateLessonId
- delete of an unknown id is a no-op
- deleting an institute detaches its lessons instead of deleting them
"""

import unittest

from profplanner.errors import DuplicateInstituteId, DuplicateLessonId, InstituteNotFound, LessonNotFound
from profplanner.merge import (
    MergeOp,
    add_institute,
    apply,
    create,
    delete,
    delete_all,
    delete_institute,
    edit_single,
    set_completed,
    set_paid,
    update_institute,
    update_many,
    upsert_many,
)
from profplanner.model import Institute, Lesson


def _lesson(
    lid: str, date: str = "2024-03-11", start: str = "09:00", end: str = "10:00", name: str = "", **kw
) -> Lesson:
    return Lesson(id=lid, name=name or f"Lesson {lid}", date=date, start_time=start, end_time=end, **kw)


class TestCreate(unittest.TestCase):
    def test_appends(self) -> None:
        existing = [_lesson("1")]
        out = create(existing, [_lesson("2"), _lesson("3")])
        self.assertEqual([l.id for l in out], ["1", "2", "3"])
        self.assertEqual([l.id for l in existing], ["1"])

    def test_duplicate_with_existing_is_rejected(self) -> None:
        with self.assertRaises(DuplicateLessonId) as ctx:
            create([_lesson("1")], [_lesson("1")])
        self.assertEqual(ctx.exception.ids, ["1"])

    def test_duplicate_inside_batch_is_rejected(self) -> None:
        with self.assertRaises(DuplicateLessonId):
            create([], [_lesson("2"), _lesson("2")])


class TestUpdate(unittest.TestCase):
    def test_update_preserves_untouched(self) -> None:
        a, b, c = _lesson("a"), _lesson("b"), _lesson("c")
        changed = _lesson("b", start="11:00", end="12:00")

        result = update_many([a, b, c], [changed])

        self.assertTrue(result.is_success)
        out = result.unwrap()
        self.assertIs(out[0], a)
        self.assertIs(out[2], c)
        self.assertEqual(out[1], changed)

    def test_update_unknown_id_fails(self) -> None:
        existing = [_lesson("a")]
        result = update_many(existing, [_lesson("a"), _lesson("zzz")])
        self.assertTrue(result.is_failure)
        self.assertIsInstance(result.error, LessonNotFound)
        self.assertEqual(result.error.missing_ids, ["zzz"])
        with self.assertRaises(LessonNotFound):
            result.unwrap()

    def test_upsert(self) -> None:
        a, b = _lesson("a"), _lesson("b")
        new_b = _lesson("b", name="Renamed")
        out = upsert_many([a, b], [new_b, _lesson("c")])
        self.assertEqual([l.id for l in out], ["a", "b", "c"])
        self.assertEqual(out[1].name, "Renamed")


class TestDelete(unittest.TestCase):
    def test_delete(self) -> None:
        out = delete([_lesson("a"), _lesson("b")], "a")
        self.assertEqual([l.id for l in out], ["b"])

    def test_delete_unknown_is_noop(self) -> None:
        existing = [_lesson("a"), _lesson("b")]
        out = delete(existing, "missing")
        self.assertEqual(out, existing)
        self.assertIsNot(out, existing)

    def test_delete_all(self) -> None:
        self.assertEqual(delete_all([_lesson("a")]), [])


class TestEditSingle(unittest.TestCase):
    def test_one_in_many_out(self) -> None:
        existing = [_lesson("x"), _lesson("1"), _lesson("y")]
        batch = [_lesson("1", start="10:00", end="11:00"), _lesson("2", date="2024-03-18")]

        out = edit_single(existing, "1", batch).unwrap()

        self.assertEqual([l.id for l in out], ["x", "y", "1", "2"])
        self.assertEqual(out[2].start_time, "10:00")

    def test_missing_original(self) -> None:
        result = edit_single([_lesson("x")], "1", [_lesson("1")])
        self.assertTrue(result.is_failure)
        self.assertIsInstance(result.error, LessonNotFound)

    def test_new_session_may_not_reuse_other_ids(self) -> None:
        with self.assertRaises(DuplicateLessonId):
            edit_single([_lesson("x"), _lesson("1")], "1", [_lesson("1"), _lesson("x")])


class TestApply(unittest.TestCase):
    def test_dispatch(self) -> None:
        existing = [_lesson("a")]
        self.assertEqual(len(apply(existing, MergeOp.CREATE, [_lesson("b")]).unwrap()), 2)
        self.assertEqual(apply(existing, MergeOp.DELETE, lesson_id="a").unwrap(), [])
        self.assertEqual(apply(existing, MergeOp.DELETE_ALL).unwrap(), [])
        self.assertTrue(apply(existing, MergeOp.UPDATE_MANY, [_lesson("b")]).is_failure)
        self.assertEqual(len(apply(existing, MergeOp.UPSERT_MANY, [_lesson("b")]).unwrap()), 2)
        self.assertEqual(
            [l.id for l in apply(existing, MergeOp.EDIT_SINGLE, [_lesson("a"), _lesson("c")], lesson_id="a").unwrap()],
            ["a", "c"],
        )

    def test_delete_needs_id(self) -> None:
        with self.assertRaises(ValueError):
            apply([], MergeOp.DELETE)


class TestFlags(unittest.TestCase):
    def test_set_paid(self) -> None:
        a, b = _lesson("a"), _lesson("b")
        out = set_paid([a, b], ["a", "unknown"], True)
        self.assertTrue(out[0].is_paid)
        self.assertIs(out[1], b)
        self.assertFalse(a.is_paid)

        undone = set_paid(out, ["a"], False)
        self.assertFalse(undone[0].is_paid)

    def test_set_completed(self) -> None:
        out = set_completed([_lesson("a")], "a", True).unwrap()
        self.assertTrue(out[0].completed)
        self.assertTrue(set_completed([], "a", True).is_failure)


class TestInstitutes(unittest.TestCase):
    def test_add_and_duplicate(self) -> None:
        out = add_institute([], Institute(id="i1", name="Enaip"))
        self.assertEqual(len(out), 1)
        with self.assertRaises(DuplicateInstituteId):
            add_institute(out, Institute(id="i1", name="Other"))

    def test_update(self) -> None:
        inst = [Institute(id="i1", name="Enaip")]
        out = update_institute(inst, Institute(id="i1", name="Enaip Milano", default_rate=20)).unwrap()
        self.assertEqual(out[0].name, "Enaip Milano")
        missing = update_institute(inst, Institute(id="nope", name="X"))
        self.assertIsInstance(missing.error, InstituteNotFound)

    def test_delete_cascades_to_lessons(self) -> None:
        institutes = [Institute(id="i1", name="Enaip"), Institute(id="i2", name="IAL")]
        other = _lesson("b", institute_id="i2")
        lessons = [_lesson("a", institute_id="i1"), other]

        kept, detached = delete_institute(institutes, lessons, "i1")

        self.assertEqual([i.id for i in kept], ["i2"])
        self.assertEqual(len(detached), 2)
        self.assertIsNone(detached[0].institute_id)
        self.assertIs(detached[1], other)
        self.assertEqual(lessons[0].institute_id, "i1")


if __name__ == "__main__":
    unittest.main()
