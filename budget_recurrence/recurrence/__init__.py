"""Recurrence rule parsing, occurrence expansion and recurring task schedules."""

from .exceptions import InvalidRecurrenceRule, RecurrenceError
from .expander import (
    RecurrenceExpander,
    create_simple_rule,
    expand_occurrences,
    get_all_occurrences_between,
    get_next_occurrence,
    is_valid_rule,
    parse_rule,
)
from .models import (
    Frequency,
    Occurrence,
    ParsedRule,
    RecurringTask,
    TaskScheduleEntry,
    format_until,
)
from .task_schedule import TaskScheduler, build_task_schedule, resolve_task_range

__all__ = [
    "Frequency",
    "InvalidRecurrenceRule",
    "Occurrence",
    "ParsedRule",
    "RecurrenceError",
    "RecurrenceExpander",
    "RecurringTask",
    "TaskScheduleEntry",
    "TaskScheduler",
    "build_task_schedule",
    "create_simple_rule",
    "expand_occurrences",
    "format_until",
    "get_all_occurrences_between",
    "get_next_occurrence",
    "is_valid_rule",
    "parse_rule",
    "resolve_task_range",
]
