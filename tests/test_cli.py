"""
End-to-end tests for the command line, against a temporary data directory.
"""

import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from rich.console import Console

from profplanner.cli import main
from profplanner.storage import LocalStore


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = self._tmp.name
        self.store = LocalStore(self.dir)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str, policy: str = "block") -> tuple[int, str]:
        buf = io.StringIO()
        with patch("profplanner.cli.console", Console(file=buf, width=200)), redirect_stdout(buf):
            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", self.dir, "--policy", policy, *argv])
        return ctx.exception.code, buf.getvalue()

    def test_add_and_list(self) -> None:
        code, out = self._run("add", "Math", "2024-03-11", "09:00", "11:00", "--session", "2024-03-18", "09:00", "11:00")
        self.assertEqual(code, 0)
        self.assertIn("Added 2 lesson(s).", out)
        self.assertEqual(len(self.store.load_lessons()), 2)

        code, out = self._run("list", "--month", "3", "--year", "2024")
        self.assertEqual(code, 0)
        self.assertIn("Math", out)
        self.assertIn("2024-03-18", out)

    def test_blocking_policy_refuses_overlap(self) -> None:
        self._run("add", "Math", "2024-03-11", "09:00", "11:00")

        code, out = self._run("add", "Physics", "2024-03-11", "10:00", "12:00")

        self.assertEqual(code, 1)
        self.assertIn("conflict", out)
        self.assertIn("Save blocked", out)
        self.assertEqual([l.name for l in self.store.load_lessons()], ["Math"])

    def test_warn_policy_needs_yes(self) -> None:
        self._run("add", "Math", "2024-03-11", "09:00", "11:00")

        code, out = self._run("add", "Physics", "2024-03-11", "10:00", "12:00", policy="warn")
        self.assertEqual(code, 1)
        self.assertIn("--yes", out)
        self.assertEqual(len(self.store.load_lessons()), 1)

        code, _ = self._run("add", "Physics", "2024-03-11", "10:00", "12:00", "--yes", policy="warn")
        self.assertEqual(code, 0)
        self.assertEqual(len(self.store.load_lessons()), 2)

        code, out = self._run("conflicts")
        self.assertEqual(code, 0)
        self.assertIn("Conflicts found: 1", out)

    def test_same_day_typed_two_ways_is_still_a_conflict(self) -> None:
        code, _ = self._run("add", "Math", "2024-3-11", "9:00", "11:00")
        self.assertEqual(code, 0)
        saved = self.store.load_lessons()[0]
        self.assertEqual((saved.date, saved.start_time), ("2024-03-11", "09:00"))

        code, out = self._run("add", "Physics", "2024-03-11", "10:00", "12:00")

        self.assertEqual(code, 1)
        self.assertIn("Save blocked", out)
        self.assertEqual(len(self.store.load_lessons()), 1)

    def test_impossible_date_is_rejected(self) -> None:
        code, out = self._run("add", "Math", "2024-02-31", "09:00", "10:00")
        self.assertEqual(code, 1)
        self.assertIn("Invalid date", out)
        self.assertEqual(self.store.load_lessons(), [])

    def test_times_sort_after_padding(self) -> None:
        self._run("add", "Late", "2024-03-11", "10:00", "11:00")
        self._run("add", "Early", "2024-03-11", "9:00", "9:30")
        code, out = self._run("list", "--date", "2024-3-11")
        self.assertEqual(code, 0)
        self.assertLess(out.index("Early"), out.index("Late"))

    def test_bad_input(self) -> None:
        code, out = self._run("add", "Math", "2024-03-11", "11:00", "09:00")
        self.assertEqual(code, 1)
        self.assertIn("must be after", out)

        code, out = self._run("delete", "does-not-exist")
        self.assertEqual(code, 1)
        self.assertIn("No lesson", out)

    def test_edit_with_id_prefix(self) -> None:
        self._run("add", "Math", "2024-03-11", "09:00", "11:00")
        lesson_id = self.store.load_lessons()[0].id

        code, _ = self._run("edit", lesson_id[:6], "--start", "10:00", "--end", "12:00")

        self.assertEqual(code, 0)
        edited = self.store.load_lessons()[0]
        self.assertEqual(edited.id, lesson_id)
        self.assertEqual((edited.start_time, edited.end_time), ("10:00", "12:00"))

    def test_institutes_and_stats(self) -> None:
        code, _ = self._run("institute", "add", "Enaip", "--rate", "20")
        self.assertEqual(code, 0)
        self._run("add", "Math", "2024-03-11", "09:00", "10:30", "--institute", "enaip")
        lesson = self.store.load_lessons()[0]
        self.assertIsNotNone(lesson.institute_id)

        code, out = self._run("stats", "--institute", "Enaip", "--month", "3", "--year", "2024")
        self.assertEqual(code, 0)
        self.assertIn("30.00", out)
        self.assertIn("1h 30m", out)

        code, _ = self._run("pay", lesson.id)
        self.assertEqual(code, 0)
        self.assertTrue(self.store.load_lessons()[0].is_paid)

        code, _ = self._run("institute", "remove", "Enaip")
        self.assertEqual(code, 0)
        self.assertEqual(self.store.load_institutes(), [])
        self.assertIsNone(self.store.load_lessons()[0].institute_id)

    def test_import(self) -> None:
        path = Path(self.dir) / "import.json"
        path.write_text(
            json.dumps(
                [
                    {"name": "Math", "date": "2024-03-11", "startTime": "09:00", "endTime": "10:00"},
                    {"name": "Math", "date": "2024-03-11", "startTime": "09:30", "endTime": "10:30"},
                ]
            ),
            encoding="utf-8",
        )
        code, _ = self._run("import", str(path))
        self.assertEqual(code, 1)
        self.assertEqual(self.store.load_lessons(), [])

    def test_free_and_report(self) -> None:
        self._run("add", "Math", "2024-03-11", "09:00", "10:00")

        code, out = self._run("free", "2024-03-11", "2024-03-17")
        self.assertEqual(code, 0)
        self.assertIn("2024-03-11: afternoon free", out)
        self.assertIn("2024-03-15: free all day", out)
        self.assertNotIn("2024-03-16", out)

        code, out = self._run("report", "lessons", "--month", "3", "--year", "2024")
        self.assertEqual(code, 0)
        self.assertIn("Total lessons: 1", out)

    def test_export(self) -> None:
        self._run("add", "Math", "2024-03-11", "09:00", "10:00")
        out_path = Path(self.dir) / "lessons.ics"

        code, _ = self._run("export", str(out_path))

        self.assertEqual(code, 0)
        self.assertIn("SUMMARY:Math", out_path.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
