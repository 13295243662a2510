"""
Unit tests for aggregation (counts, minutes, earnings).

Rates:
- HOURLY: rate * minutes / 60
- PER_LESSON: the rate, whatever the duration
- no institute or no rate: 0
"""

import unittest

from profplanner.model import Institute, Lesson, RateType
from profplanner.stats import (
    LessonFilter,
    aggregate,
    lesson_earnings,
    lessons_on,
    payment_summary,
    sort_lessons,
    subjects,
)

HOURLY = Institute(id="X", name="Enaip", default_rate=20.0, rate_type=RateType.HOURLY)
PER_LESSON = Institute(id="Y", name="IAL", default_rate=25.0, rate_type=RateType.PER_LESSON)
NO_RATE = Institute(id="Z", name="Volunteer")


def _lesson(lid: str, date: str, start: str, end: str, institute_id=None, name: str = "Math", paid: bool = False) -> Lesson:
    return Lesson(
        id=lid, name=name, date=date, start_time=start, end_time=end, institute_id=institute_id, is_paid=paid
    )


class TestEarnings(unittest.TestCase):
    def test_hourly(self) -> None:
        lesson = _lesson("1", "2024-03-11", "09:00", "10:30", "X")
        self.assertEqual(lesson_earnings(lesson, HOURLY), 30.0)

    def test_per_lesson_ignores_duration(self) -> None:
        short = _lesson("1", "2024-03-11", "09:00", "09:10", "Y")
        long = _lesson("2", "2024-03-11", "09:00", "13:00", "Y")
        self.assertEqual(lesson_earnings(short, PER_LESSON), 25.0)
        self.assertEqual(lesson_earnings(long, PER_LESSON), 25.0)

    def test_no_institute_or_rate(self) -> None:
        lesson = _lesson("1", "2024-03-11", "09:00", "10:00")
        self.assertEqual(lesson_earnings(lesson, None), 0.0)
        self.assertEqual(lesson_earnings(lesson, NO_RATE), 0.0)

    def test_inverted_range_is_clamped(self) -> None:
        bad = _lesson("1", "2024-03-11", "11:00", "09:00", "X")
        summary = aggregate([bad], [HOURLY])
        self.assertEqual(summary.count, 1)
        self.assertEqual(summary.total_minutes, 0)
        self.assertEqual(summary.total_earnings, 0.0)

    def test_malformed_record_never_reduces_total(self) -> None:
        good = _lesson("1", "2024-03-11", "09:00", "10:00", "X")
        bad = _lesson("2", "2024-03-11", "12:00", "08:00", "X")
        self.assertEqual(aggregate([good, bad], [HOURLY]).total_minutes, 60)
        self.assertEqual(aggregate([good, bad], [HOURLY]).total_earnings, 20.0)


class TestFilters(unittest.TestCase):
    def setUp(self) -> None:
        self.lessons = [
            _lesson("1", "2024-03-11", "09:00", "10:30", "X"),
            _lesson("2", "2024-03-31", "14:00", "16:00", "X", name="Physics"),
            _lesson("3", "2024-04-01", "09:00", "10:00", "X"),
            _lesson("4", "2024-03-12", "09:00", "11:00", "Y"),
            _lesson("5", "2023-03-12", "09:00", "11:00", "X"),
        ]
        self.institutes = [HOURLY, PER_LESSON]

    def test_institute_month_year(self) -> None:
        summary = aggregate(self.lessons, self.institutes, LessonFilter(institute_id="X", month=3, year=2024))
        self.assertEqual(summary.count, 2)
        self.assertEqual(summary.total_minutes, 210)
        self.assertEqual(summary.total_earnings, 70.0)
        self.assertEqual(summary.hours_minutes, (3, 30))

    def test_month_boundaries_come_from_the_string(self) -> None:
        march = aggregate(self.lessons, self.institutes, LessonFilter(month=3, year=2024))
        april = aggregate(self.lessons, self.institutes, LessonFilter(month=4, year=2024))
        self.assertEqual(march.count, 3)
        self.assertEqual(april.count, 1)

    def test_subject(self) -> None:
        summary = aggregate(self.lessons, self.institutes, LessonFilter(subject="Physics"))
        self.assertEqual(summary.count, 1)

    def test_date_range_inclusive(self) -> None:
        f = LessonFilter(start_date="2024-03-12", end_date="2024-04-01")
        self.assertEqual(aggregate(self.lessons, self.institutes, f).count, 3)

    def test_no_filter(self) -> None:
        summary = aggregate(self.lessons, self.institutes)
        self.assertEqual(summary.count, 5)
        # 30 + 40 + 20 + 25 + 40
        self.assertEqual(summary.total_earnings, 155.0)

    def test_malformed_date_fails_month_filter(self) -> None:
        odd = _lesson("6", "someday", "09:00", "10:00", "X")
        self.assertEqual(aggregate([odd], self.institutes, LessonFilter(year=2024)).count, 0)
        self.assertEqual(aggregate([odd], self.institutes).count, 1)


class TestPayments(unittest.TestCase):
    def test_split(self) -> None:
        lessons = [
            _lesson("1", "2024-03-11", "09:00", "10:00", "X", paid=True),
            _lesson("2", "2024-03-12", "09:00", "11:00", "X"),
            _lesson("3", "2024-03-13", "09:00", "11:00", "Y"),
        ]
        parts = payment_summary(lessons, [HOURLY, PER_LESSON], LessonFilter(institute_id="X"))
        self.assertEqual(parts["paid"].count, 1)
        self.assertEqual(parts["paid"].total_earnings, 20.0)
        self.assertEqual(parts["to_pay"].count, 1)
        self.assertEqual(parts["to_pay"].total_earnings, 40.0)


class TestHelpers(unittest.TestCase):
    def test_sorting_and_subjects(self) -> None:
        lessons = [
            _lesson("1", "2024-03-12", "09:00", "10:00", name="b"),
            _lesson("2", "2024-03-11", "14:00", "15:00", name="a"),
            _lesson("3", "2024-03-11", "09:00", "10:00", name="b"),
        ]
        self.assertEqual([l.id for l in sort_lessons(lessons)], ["3", "2", "1"])
        self.assertEqual([l.id for l in sort_lessons(lessons, by="name")], ["2", "3", "1"])
        self.assertEqual(subjects(lessons), ["a", "b"])
        self.assertEqual([l.id for l in lessons_on(lessons, "2024-03-11")], ["3", "2"])


if __name__ == "__main__":
    unittest.main()
