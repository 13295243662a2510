"""
CLI (Command Line Interface).

Terminal commands for managing lessons, e.g.:

    profplanner list --month 3 --year 2024
    profplanner add "Digital Marketing" 2024-03-11 09:00 13:00 --institute Enaip
    profplanner edit <id> --start 10:00 --session 2024-03-18 09:00 13:00
    profplanner conflicts
    profplanner stats --institute Enaip --month 3 --year 2024
    profplanner pay <id> <id>
    profplanner free 2024-03-11 2024-03-22
    profplanner export lessons.ics

Lesson and institute ids may be abbreviated to any unique prefix; institutes
can also be given by name.

Exit codes: 0 success, 1 refused or failed (conflicts, unknown id, bad input), 2 usage/config error.
"""

from __future__ import annotations

import argparse
import re
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from profplanner.config import load_settings, parse_policy
from profplanner.errors import DuplicateLessonId, StoreError
from profplanner.export_ics import export_lessons_to_ics
from profplanner.freetime import SlotKind, month_bounds
from profplanner.importer import load_candidates
from profplanner.log import setup_logger
from profplanner.model import Institute, Lesson, Modality, RateType, new_id
from profplanner.report import free_time_report, lessons_report
from profplanner.service import Planner, SaveOutcome, SaveStatus
from profplanner.stats import LessonFilter, filter_lessons, sort_lessons
from profplanner.times import normalize_date, normalize_time, to_minutes

console = Console()

_TIME_RE = re.compile(r"([01]?\d|2[0-3]):[0-5]\d")

_SLOT_TEXT = {
    SlotKind.FULLY_FREE: "free all day",
    SlotKind.MORNING_FREE: "morning free",
    SlotKind.AFTERNOON_FREE: "afternoon free",
}


class InputError(Exception):
    """Bad command-line input; reported to the user, exit code 1."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _short(identifier: str) -> str:
    return identifier[:8]


def _resolve_lesson_id(planner: Planner, ref: str) -> str:
    ref = (ref or "").strip()
    matches = [l.id for l in planner.lessons if l.id.startswith(ref)] if ref else []
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise InputError(f"No lesson with id '{ref}'.")
    raise InputError(f"Lesson id '{ref}' is ambiguous ({len(matches)} matches).")


def _resolve_lesson(planner: Planner, ref: str) -> Lesson:
    lesson = planner.lesson(_resolve_lesson_id(planner, ref))
    if lesson is None:
        raise InputError(f"No lesson with id '{ref}'.")
    return lesson


def _resolve_institute_id(planner: Planner, ref: Optional[str]) -> Optional[str]:
    if ref is None:
        return None
    ref = ref.strip()
    if not ref:
        return None
    by_name = [i.id for i in planner.institutes if i.name.lower() == ref.lower()]
    if len(by_name) == 1:
        return by_name[0]
    by_id = [i.id for i in planner.institutes if i.id.startswith(ref)]
    if len(by_id) == 1:
        return by_id[0]
    raise InputError(f"Unknown institute '{ref}'.")


def _check_date(value: str) -> str:
    value = (value or "").strip()
    canonical = normalize_date(value)
    if canonical is None:
        raise InputError(f"Invalid date '{value}' (expected YYYY-MM-DD).")
    return canonical


def _check_range(start: str, end: str) -> tuple[str, str]:
    start, end = (start or "").strip(), (end or "").strip()
    padded = []
    for t in (start, end):
        if not _TIME_RE.fullmatch(t):
            raise InputError(f"Invalid time '{t}' (expected HH:MM).")
        padded.append(normalize_time(t))
    start, end = padded
    if to_minutes(end) <= to_minutes(start):
        raise InputError(f"End time {end} must be after start time {start}.")
    return start, end


def _iso_day(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise InputError(f"Invalid date '{value}' (expected YYYY-MM-DD).") from None


def _filter_from_args(planner: Planner, args: argparse.Namespace) -> LessonFilter:
    month = getattr(args, "month", None)
    if month is not None and not 1 <= month <= 12:
        raise InputError("Month must be between 1 and 12.")
    return LessonFilter(
        institute_id=_resolve_institute_id(planner, getattr(args, "institute", None)),
        subject=getattr(args, "subject", None) or None,
        month=month,
        year=getattr(args, "year", None),
    )


def _money(amount: float) -> str:
    return f"{amount:.2f}"


def _print_conflicts(outcome: SaveOutcome) -> None:
    console.print(f"[bold yellow]{len(outcome.report)} time conflict(s) detected:[/]")
    for line in outcome.report.summary():
        console.print(f"  - {escape(line)}")


def _finish(planner: Planner, outcome: SaveOutcome, confirm: bool, what: str) -> int:
    """
    Turn a SaveOutcome into console output and an exit code.
    """
    if outcome.status == SaveStatus.NOT_FOUND:
        console.print(f"Not found: {', '.join(_short(i) for i in outcome.missing_ids)}")
        return 1

    if outcome.status == SaveStatus.BLOCKED:
        _print_conflicts(outcome)
        console.print("Save blocked. Fix the times and try again.")
        return 1

    if outcome.status == SaveStatus.NEEDS_CONFIRMATION:
        _print_conflicts(outcome)
        if not confirm or outcome.pending is None:
            console.print("Nothing saved. Re-run with --yes to save the overlapping lessons anyway.")
            return 1
        outcome = planner.confirm(outcome.pending)
        if outcome.status != SaveStatus.SAVED:
            return _finish(planner, outcome, False, what)

    if outcome.write_error:
        console.print(f"[red]Could not save:[/] {escape(outcome.write_error)}")
        return 1

    console.print(what)
    return 0


def _lesson_table(planner: Planner, lessons: Sequence[Lesson], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Subject")
    table.add_column("Institute")
    table.add_column("Mode")
    table.add_column("Paid")
    table.add_column("Done")
    for lesson in lessons:
        inst = planner.institute(lesson.institute_id)
        table.add_row(
            _short(lesson.id),
            lesson.date,
            f"{lesson.start_time}-{lesson.end_time}",
            escape(lesson.name),
            escape(inst.name) if inst else "-",
            "remote" if lesson.modality == Modality.REMOTE else "in person",
            "yes" if lesson.is_paid else "no",
            "yes" if lesson.completed else "no",
        )
    return table


def _extra_sessions(template: Lesson, sessions: Optional[list[list[str]]]) -> list[Lesson]:
    out: list[Lesson] = []
    for day, start, end in sessions or []:
        start, end = _check_range(start, end)
        out.append(replace(template, id=new_id(), date=_check_date(day), start_time=start, end_time=end))
    return out


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_list(args: argparse.Namespace, planner: Planner) -> int:
    lessons = filter_lessons(planner.lessons, _filter_from_args(planner, args))
    if args.date:
        day = _check_date(args.date)
        lessons = [l for l in lessons if l.date == day]
    if not lessons:
        console.print("No lessons.")
        return 0
    console.print(_lesson_table(planner, sort_lessons(lessons, by=args.sort), f"Lessons ({len(lessons)})"))
    return 0


def _cmd_add(args: argparse.Namespace, planner: Planner) -> int:
    name = (args.name or "").strip()
    if not name:
        raise InputError("Please provide a subject name.")
    start, end = _check_range(args.start, args.end)

    first = Lesson(
        id=new_id(),
        name=name,
        code=(args.code or "").strip(),
        institute_id=_resolve_institute_id(planner, args.institute),
        date=_check_date(args.date),
        start_time=start,
        end_time=end,
        modality=Modality.REMOTE if args.remote else Modality.IN_PERSON,
        topics=(args.topics or "").strip(),
    )
    batch = [first] + _extra_sessions(first, args.session)
    return _finish(planner, planner.add_lessons(batch), args.yes, f"Added {len(batch)} lesson(s).")


def _cmd_edit(args: argparse.Namespace, planner: Planner) -> int:
    original = _resolve_lesson(planner, args.lesson_id)

    changes: dict[str, object] = {}
    if args.name is not None:
        if not args.name.strip():
            raise InputError("Subject name cannot be empty.")
        changes["name"] = args.name.strip()
    if args.code is not None:
        changes["code"] = args.code.strip()
    if args.institute is not None:
        changes["institute_id"] = _resolve_institute_id(planner, args.institute)
    if args.date is not None:
        changes["date"] = _check_date(args.date)
    if args.topics is not None:
        changes["topics"] = args.topics.strip()
    if args.modality is not None:
        changes["modality"] = Modality(args.modality)

    start = args.start if args.start is not None else original.start_time
    end = args.end if args.end is not None else original.end_time
    if args.start is not None or args.end is not None:
        changes["start_time"], changes["end_time"] = _check_range(start, end)

    edited = replace(original, **changes)
    batch = [edited] + _extra_sessions(edited, args.session)
    return _finish(
        planner, planner.edit_lesson(original.id, batch), args.yes, f"Updated lesson {_short(original.id)}."
    )


def _cmd_delete(args: argparse.Namespace, planner: Planner) -> int:
    lesson_id = _resolve_lesson_id(planner, args.lesson_id)
    return _finish(planner, planner.delete_lesson(lesson_id), False, f"Deleted lesson {_short(lesson_id)}.")


def _cmd_clear(args: argparse.Namespace, planner: Planner) -> int:
    if not args.yes:
        console.print(f"This deletes all {len(planner.lessons)} lesson(s). Re-run with --yes to confirm.")
        return 1
    return _finish(planner, planner.delete_all(), False, "All lessons deleted.")


def _cmd_import(args: argparse.Namespace, planner: Planner) -> int:
    try:
        batch, skipped = load_candidates(args.file, institute_id=_resolve_institute_id(planner, args.institute))
    except (OSError, ValueError) as exc:
        raise InputError(f"Cannot import {args.file}: {exc}") from exc

    if skipped:
        console.print(f"Skipped {skipped} unusable record(s).")
    if not batch:
        console.print("Nothing to import.")
        return 0
    return _finish(planner, planner.add_lessons(batch), args.yes, f"Imported {len(batch)} lesson(s).")


def _cmd_conflicts(args: argparse.Namespace, planner: Planner) -> int:
    pairs = planner.audit()
    if not pairs:
        console.print("No conflicts found.")
        return 0

    console.print(f"Conflicts found: {len(pairs)}")
    for a, b in pairs:
        console.print(
            f"- {a.date} {a.start_time}-{a.end_time} {a.name} [{_short(a.id)}]"
            f"  <->  {b.start_time}-{b.end_time} {b.name} [{_short(b.id)}]",
            markup=False,
        )
    return 0


def _cmd_stats(args: argparse.Namespace, planner: Planner) -> int:
    summary = planner.summary(_filter_from_args(planner, args))
    hours, minutes = summary.hours_minutes

    table = Table(show_header=False)
    table.add_row("Lessons", str(summary.count))
    table.add_row("Hours", f"{hours}h {minutes:02d}m")
    table.add_row("Earnings", _money(summary.total_earnings))
    console.print(table)
    return 0


def _cmd_payments(args: argparse.Namespace, planner: Planner) -> int:
    parts = planner.payments(_filter_from_args(planner, args))

    table = Table(title="Payments")
    table.add_column("")
    table.add_column("Lessons", justify="right")
    table.add_column("Hours", justify="right")
    table.add_column("Amount", justify="right")
    for label, key in (("To pay", "to_pay"), ("Paid", "paid")):
        s = parts[key]
        hours, minutes = s.hours_minutes
        table.add_row(label, str(s.count), f"{hours}h {minutes:02d}m", _money(s.total_earnings))
    console.print(table)
    return 0


def _cmd_pay(args: argparse.Namespace, planner: Planner) -> int:
    ids = [_resolve_lesson_id(planner, ref) for ref in args.lesson_ids]
    paid = not args.undo
    label = "paid" if paid else "unpaid"
    return _finish(planner, planner.mark_paid(ids, paid), False, f"Marked {len(ids)} lesson(s) as {label}.")


def _cmd_done(args: argparse.Namespace, planner: Planner) -> int:
    lesson_id = _resolve_lesson_id(planner, args.lesson_id)
    label = "not completed" if args.undo else "completed"
    outcome = planner.set_completed(lesson_id, not args.undo)
    return _finish(planner, outcome, False, f"Lesson {_short(lesson_id)} marked {label}.")


def _period(args: argparse.Namespace) -> tuple[date, date]:
    if args.start and args.end:
        return _iso_day(args.start), _iso_day(args.end)
    if args.month and args.year:
        if not 1 <= args.month <= 12:
            raise InputError("Month must be between 1 and 12.")
        return month_bounds(args.year, args.month)
    raise InputError("Give START END dates or --month and --year.")


def _cmd_free(args: argparse.Namespace, planner: Planner) -> int:
    start, end = _period(args)
    slots = planner.free_slots(start, end)
    if not slots:
        console.print("No availability in the selected period.")
        return 0
    for slot in slots:
        console.print(f"{slot.weekday} {slot.date}: {_SLOT_TEXT[slot.kind]}")
    return 0


def _cmd_tomorrow(args: argparse.Namespace, planner: Planner) -> int:
    lessons = planner.upcoming()
    if not lessons:
        console.print("No lessons tomorrow.")
        return 0
    console.print(_lesson_table(planner, lessons, "Tomorrow"))
    return 0


def _cmd_institute(args: argparse.Namespace, planner: Planner) -> int:
    action = args.institute_command

    if action == "list":
        if not planner.institutes:
            console.print("No institutes.")
            return 0
        table = Table(title="Institutes")
        table.add_column("ID")
        table.add_column("Name")
        table.add_column("Rate", justify="right")
        table.add_column("Type")
        for inst in planner.institutes:
            rate = _money(inst.default_rate) if inst.default_rate is not None else "-"
            table.add_row(_short(inst.id), escape(inst.name), rate, inst.rate_type.value.lower())
        console.print(table)
        return 0

    if action == "add":
        name = (args.name or "").strip()
        if not name:
            raise InputError("Please provide an institute name.")
        if any(i.name.lower() == name.lower() for i in planner.institutes):
            raise InputError(f"Institute '{name}' already exists.")
        inst = Institute(
            id=new_id(),
            name=name,
            color=args.color or planner.next_color(),
            default_rate=args.rate,
            rate_type=RateType(args.rate_type),
        )
        return _finish(planner, planner.add_institute(inst), False, f"Added institute {escape(name)} ({_short(inst.id)}).")

    current = planner.institute(_resolve_institute_id(planner, args.institute))
    if current is None:
        raise InputError(f"Unknown institute '{args.institute}'.")

    if action == "update":
        changes: dict[str, object] = {}
        if args.name:
            changes["name"] = args.name.strip()
        if args.color:
            changes["color"] = args.color
        if args.rate is not None:
            changes["default_rate"] = args.rate
        if args.rate_type:
            changes["rate_type"] = RateType(args.rate_type)
        outcome = planner.update_institute(replace(current, **changes))
        return _finish(planner, outcome, False, f"Updated institute {escape(current.name)}.")

    if action == "remove":
        outcome = planner.delete_institute(current.id)
        return _finish(planner, outcome, False, f"Removed institute {escape(current.name)}; its lessons were kept.")

    return 2


def _cmd_export(args: argparse.Namespace, planner: Planner) -> int:
    """
    Export lessons into an iCalendar (.ics) file.
    """
    lessons = filter_lessons(planner.lessons, _filter_from_args(planner, args))
    if not lessons:
        console.print("No lessons to export.")
        return 0

    out_path = (args.out or "").strip()
    if not out_path:
        raise InputError("Please provide output .ics path.")

    n = export_lessons_to_ics(sort_lessons(lessons), planner.institutes, out_path)
    console.print(f"Exported {n} lessons to: {escape(out_path)}")
    return 0


def _cmd_report(args: argparse.Namespace, planner: Planner) -> int:
    start, end = _period(args)
    if args.kind == "free":
        text = free_time_report(planner.lessons, start, end)
    else:
        text = lessons_report(
            planner.lessons,
            planner.institutes,
            start,
            end,
            institute_id=_resolve_institute_id(planner, args.institute),
            subject=args.subject or None,
        )
    print(text)
    return 0


_COMMANDS: dict[str, Callable[[argparse.Namespace, Planner], int]] = {
    "list": _cmd_list,
    "add": _cmd_add,
    "edit": _cmd_edit,
    "delete": _cmd_delete,
    "clear": _cmd_clear,
    "import": _cmd_import,
    "conflicts": _cmd_conflicts,
    "stats": _cmd_stats,
    "payments": _cmd_payments,
    "pay": _cmd_pay,
    "done": _cmd_done,
    "free": _cmd_free,
    "tomorrow": _cmd_tomorrow,
    "institute": _cmd_institute,
    "export": _cmd_export,
    "report": _cmd_report,
}


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_filter_args(p: argparse.ArgumentParser, with_period: bool = True) -> None:
    p.add_argument("--institute", type=str, help="Institute name or id")
    p.add_argument("--subject", type=str, help="Exact subject name")
    if with_period:
        p.add_argument("--month", type=int, help="Month number (1-12)")
        p.add_argument("--year", type=int, help="Year (e.g. 2024)")


def _add_period_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("start", nargs="?", help="First day (YYYY-MM-DD)")
    p.add_argument("end", nargs="?", help="Last day (YYYY-MM-DD)")
    p.add_argument("--month", type=int, help="Whole month instead of START END")
    p.add_argument("--year", type=int, help="Year for --month")


def _add_session_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--session",
        nargs=3,
        action="append",
        metavar=("DATE", "START", "END"),
        help="Additional session with the same subject (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="profplanner", description="ProfPlanner CLI")
    parser.add_argument("--data-dir", type=str, help="Local data directory (overrides PROFPLANNER_DATA_DIR)")
    parser.add_argument("--policy", choices=["block", "warn"], help="Conflict policy for this run")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List lessons")
    _add_filter_args(p_list)
    p_list.add_argument("--date", type=str, help="Only this day (YYYY-MM-DD)")
    p_list.add_argument("--sort", choices=["date", "name"], default="date")

    p_add = sub.add_parser("add", help="Add a lesson (and optional extra sessions)")
    p_add.add_argument("name", type=str, help="Subject name")
    p_add.add_argument("date", type=str, help="Date (YYYY-MM-DD)")
    p_add.add_argument("start", type=str, help="Start time (HH:MM)")
    p_add.add_argument("end", type=str, help="End time (HH:MM)")
    p_add.add_argument("--code", type=str)
    p_add.add_argument("--institute", type=str, help="Institute name or id")
    p_add.add_argument("--remote", action="store_true", help="Remote lesson (default: in person)")
    p_add.add_argument("--topics", type=str)
    _add_session_arg(p_add)
    p_add.add_argument("--yes", action="store_true", help="Save despite conflicts (warn policy)")

    p_edit = sub.add_parser("edit", help="Edit a lesson (may split it into several sessions)")
    p_edit.add_argument("lesson_id", type=str)
    p_edit.add_argument("--name", type=str)
    p_edit.add_argument("--code", type=str)
    p_edit.add_argument("--institute", type=str, help="Institute name or id ('' to detach)")
    p_edit.add_argument("--date", type=str)
    p_edit.add_argument("--start", type=str)
    p_edit.add_argument("--end", type=str)
    p_edit.add_argument("--modality", choices=[m.value for m in Modality])
    p_edit.add_argument("--topics", type=str)
    _add_session_arg(p_edit)
    p_edit.add_argument("--yes", action="store_true", help="Save despite conflicts (warn policy)")

    p_delete = sub.add_parser("delete", help="Delete a lesson")
    p_delete.add_argument("lesson_id", type=str)

    p_clear = sub.add_parser("clear", help="Delete all lessons")
    p_clear.add_argument("--yes", action="store_true")

    p_import = sub.add_parser("import", help="Import lessons from a JSON file")
    p_import.add_argument("file", type=str)
    p_import.add_argument("--institute", type=str, help="Assign all imported lessons to this institute")
    p_import.add_argument("--yes", action="store_true", help="Save despite conflicts (warn policy)")

    sub.add_parser("conflicts", help="Show overlapping saved lessons")

    p_stats = sub.add_parser("stats", help="Lesson count, hours and earnings")
    _add_filter_args(p_stats)

    p_payments = sub.add_parser("payments", help="Amounts still to be paid vs. paid")
    _add_filter_args(p_payments)

    p_pay = sub.add_parser("pay", help="Mark lessons as paid")
    p_pay.add_argument("lesson_ids", nargs="+")
    p_pay.add_argument("--undo", action="store_true", help="Mark as unpaid instead")

    p_done = sub.add_parser("done", help="Mark a lesson as completed")
    p_done.add_argument("lesson_id", type=str)
    p_done.add_argument("--undo", action="store_true")

    p_free = sub.add_parser("free", help="Free weekdays in a period")
    _add_period_args(p_free)

    sub.add_parser("tomorrow", help="Lessons scheduled for tomorrow")

    p_inst = sub.add_parser("institute", help="Manage institutes")
    inst_sub = p_inst.add_subparsers(dest="institute_command", required=True)
    inst_sub.add_parser("list", help="List institutes")
    p_inst_add = inst_sub.add_parser("add", help="Add an institute")
    p_inst_add.add_argument("name", type=str)
    p_inst_add.add_argument("--rate", type=float)
    p_inst_add.add_argument("--rate-type", choices=[r.value for r in RateType], default=RateType.HOURLY.value)
    p_inst_add.add_argument("--color", type=str)
    p_inst_update = inst_sub.add_parser("update", help="Change an institute")
    p_inst_update.add_argument("institute", type=str, help="Institute name or id")
    p_inst_update.add_argument("--name", type=str)
    p_inst_update.add_argument("--rate", type=float)
    p_inst_update.add_argument("--rate-type", choices=[r.value for r in RateType])
    p_inst_update.add_argument("--color", type=str)
    p_inst_remove = inst_sub.add_parser("remove", help="Remove an institute (lessons are kept)")
    p_inst_remove.add_argument("institute", type=str, help="Institute name or id")

    p_export = sub.add_parser("export", help="Export lessons to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. lessons.ics)")
    _add_filter_args(p_export)

    p_report = sub.add_parser("report", help="Plain-text report")
    p_report.add_argument("kind", choices=["lessons", "free"])
    _add_period_args(p_report)
    _add_filter_args(p_report, with_period=False)

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ValueError as exc:
        console.print(f"Configuration error: {escape(str(exc))}")
        raise SystemExit(2)

    if args.data_dir:
        settings = replace(settings, data_dir=Path(args.data_dir), remote_url=None)
    if args.policy:
        settings = replace(settings, policy=parse_policy(args.policy))

    setup_logger(level=settings.log_level, log_file=settings.log_file)

    try:
        planner = Planner.open(settings.build_store(), settings.policy)
    except StoreError as exc:
        console.print(f"[red]Could not load data:[/] {escape(str(exc))}")
        raise SystemExit(1)

    handler = _COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        code = handler(args, planner)
    except InputError as exc:
        console.print(escape(str(exc)))
        code = 1
    except DuplicateLessonId as exc:
        console.print(escape(str(exc)))
        code = 1
    raise SystemExit(code)
