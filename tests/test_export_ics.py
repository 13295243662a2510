import tempfile
import unittest
from pathlib import Path

from profplanner.export_ics import export_lessons_to_ics
from profplanner.model import Institute, Lesson, Modality


class TestExportIcs(unittest.TestCase):
    def test_export(self) -> None:
        institutes = [Institute(id="i1", name="Enaip")]
        lessons = [
            Lesson(
                id="a",
                name="Math",
                date="2024-03-11",
                start_time="09:00",
                end_time="10:30",
                institute_id="i1",
                topics="Fractions, decimals",
            ),
            Lesson(
                id="b",
                name="Physics",
                date="2024-03-12",
                start_time="14:00",
                end_time="15:00",
                modality=Modality.REMOTE,
            ),
            Lesson(id="c", name="Broken", date="2024-03-13", start_time="", end_time="10:00"),
        ]

        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "export" / "lessons.ics"
            count = export_lessons_to_ics(lessons, institutes, out)
            raw = out.read_bytes().decode("utf-8")

        self.assertEqual(count, 2)
        self.assertTrue(raw.startswith("BEGIN:VCALENDAR\r\n"))
        self.assertTrue(raw.endswith("END:VCALENDAR\r\n"))
        self.assertIn("UID:a@profplanner", raw)
        self.assertIn("DTSTART:20240311T090000", raw)
        self.assertIn("DTEND:20240311T103000", raw)
        self.assertIn("SUMMARY:Math (Enaip)", raw)
        self.assertIn("LOCATION:Enaip", raw)
        self.assertIn("DESCRIPTION:Fractions\\, decimals", raw)
        self.assertIn("SUMMARY:Physics\r\n", raw)
        self.assertIn("LOCATION:Online", raw)
        self.assertNotIn("Broken", raw)


if __name__ == "__main__":
    unittest.main()
