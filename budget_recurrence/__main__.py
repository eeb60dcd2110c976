"""Command-line entry for budget_recurrence.

Thin argparse wrapper around the engine for operators and scripts: validate a
rule, expand it over a window, compute a reminder's next due date, or lay out
stored reminder and task rows (JSON files) on a calendar. Results are printed
as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

from dateutil import parser as date_parser

from . import _init_logging
from .config import load_settings
from .recurrence import InvalidRecurrenceRule, RecurrenceExpander, TaskScheduler
from .reminders import (
    BillReminder,
    DueDateCalculator,
    RecurrenceType,
    ReminderScheduler,
    UnsupportedRecurrenceType,
)
from .timezone import TimezoneError
from .utils import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 2


def _parse_instant(value: str) -> datetime:
    try:
        return date_parser.isoparse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an ISO 8601 datetime: {value!r}") from e


def _load_rows(path: Optional[str]) -> list[dict[str, Any]]:
    if not path:
        return []
    rows = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(rows, list):
        raise ValueError(f"{path}: expected a JSON list of rows")
    return rows


def _entry_to_json(entry: Any) -> dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in asdict(entry).items()
    }


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the budget_recurrence CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="budget-recurrence",
        description="Recurrence expansion and bill due-date calculator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  budget-recurrence validate "FREQ=WEEKLY;INTERVAL=2"
  budget-recurrence expand "FREQ=DAILY;COUNT=5" --base 2025-01-01T09:00:00Z \\
      --start 2025-01-01T00:00:00Z --end 2025-01-31T00:00:00Z
  budget-recurrence next-due --type monthly --due-day 15 --start-month 2025-01 \\
      --time-zone America/Sao_Paulo
  budget-recurrence schedule --reminders bills.json --tasks tasks.json \\
      --start 2026-01-01T00:00:00Z --end 2026-02-01T00:00:00Z --time-zone UTC
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="YAML config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Check an RRULE string")
    validate.add_argument("rule")

    expand = subparsers.add_parser("expand", help="Expand an RRULE inside a window")
    expand.add_argument("rule")
    expand.add_argument("--base", type=_parse_instant, required=True, help="Base start")
    expand.add_argument("--base-end", type=_parse_instant, help="Base end (enables durations)")
    expand.add_argument("--start", type=_parse_instant, required=True, help="Window start")
    expand.add_argument("--end", type=_parse_instant, required=True, help="Window end")
    expand.add_argument("--item-type", choices=("event", "task"), default="event")
    expand.add_argument("--base-due", type=_parse_instant, help="Base due instant (tasks)")
    expand.add_argument("--duration-minutes", type=int, help="Task duration when no --base-due")

    next_due = subparsers.add_parser("next-due", help="Next due date of a bill reminder")
    next_due.add_argument("--type", dest="recurrence_type", required=True,
                          choices=[t.value for t in RecurrenceType])
    next_due.add_argument("--due-day", type=int, required=True)
    next_due.add_argument("--start-month", required=True, help="YYYY-MM")
    next_due.add_argument("--due-time", help="HH:MM")
    next_due.add_argument("--time-zone", help="IANA time zone")
    next_due.add_argument("--now", type=_parse_instant, help="Reference instant (default: now)")
    next_due.add_argument("--grace-minutes", type=int, help="Monthly grace window in minutes")

    schedule = subparsers.add_parser("schedule", help="Calendar entries for reminder and task rows")
    schedule.add_argument("--reminders", metavar="PATH", help="JSON list of bill reminder rows")
    schedule.add_argument("--tasks", metavar="PATH", help="JSON list of task rows")
    schedule.add_argument("--start", type=_parse_instant, help="View start (reminders)")
    schedule.add_argument("--end", type=_parse_instant, help="View end (reminders)")
    schedule.add_argument("--time-zone", help="IANA time zone")
    schedule.add_argument("--now", type=_parse_instant, help="Reference instant (default: now)")

    return parser


def _run(args: argparse.Namespace) -> dict[str, Any]:
    settings = load_settings(args.config)
    configure_logging(settings.log_level, debug_mode=args.debug)
    logger.debug("Running %s command", args.command)

    if args.command == "validate":
        expander = RecurrenceExpander(settings)
        parsed = expander.parse_rule(args.rule)
        return {"valid": True, "canonical": parsed.to_rule_string()}

    if args.command == "expand":
        expander = RecurrenceExpander(settings)
        occurrences = expander.expand_occurrences(
            args.rule,
            args.start,
            args.end,
            args.base,
            args.item_type,
            args.base_end,
            args.base_due,
            args.duration_minutes,
        )
        return {
            "occurrences": [
                {
                    "sequence": occ.sequence,
                    "start_at": occ.start_at.isoformat(),
                    "end_at": occ.end_at.isoformat() if occ.end_at else None,
                    "due_at": occ.due_at.isoformat() if occ.due_at else None,
                }
                for occ in occurrences
            ]
        }

    if args.command == "schedule":
        return _build_schedule(args, settings)

    reminder = BillReminder(
        recurrence_type=args.recurrence_type,
        due_day=args.due_day,
        start_month=args.start_month,
        due_time=args.due_time,
    )
    grace = timedelta(minutes=args.grace_minutes) if args.grace_minutes is not None else None
    due = DueDateCalculator(settings).calculate_next_due_date(
        reminder, now=args.now, time_zone=args.time_zone, grace_window=grace
    )
    return {"next_due": due.isoformat()}


def _build_schedule(args: argparse.Namespace, settings: Any) -> dict[str, Any]:
    reminder_rows = _load_rows(args.reminders)
    task_rows = _load_rows(args.tasks)
    if reminder_rows and (args.start is None or args.end is None):
        raise ValueError("--start and --end are required to schedule reminders")

    reminders: list[Any] = []
    if reminder_rows:
        reminders = ReminderScheduler(settings).build_schedule(
            reminder_rows, args.start, args.end, args.time_zone
        )
    tasks = TaskScheduler(settings).build_schedule(task_rows, args.time_zone, args.now)
    return {
        "reminders": [_entry_to_json(entry) for entry in reminders],
        "tasks": [_entry_to_json(entry) for entry in tasks],
    }


def main(argv: Optional[list[str]] = None) -> int:
    """Run the budget_recurrence CLI and return the process exit code."""
    _init_logging(os.environ.get("BUDGET_RECURRENCE_LOG_LEVEL"))
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        result = _run(args)
    except (
        InvalidRecurrenceRule, UnsupportedRecurrenceType, TimezoneError, ValueError, OSError
    ) as e:
        message = getattr(e, "message", str(e))
        if args.command == "validate" and isinstance(e, InvalidRecurrenceRule):
            print(json.dumps({"valid": False, "error": message}))
        print(f"Error: {message}", file=sys.stderr)
        return EXIT_INVALID

    print(json.dumps(result))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
