"""budget_recurrence - recurrence expansion and bill due-date engine.

Pure, synchronous calculations for a personal-finance application: expanding
RRULE recurrences of calendar events and tasks into concrete occurrences, and
computing the next due date of periodic bill reminders in the owner's time
zone. Persistence, delivery and rendering stay with the host application.
"""

from typing import Optional

__version__ = "1.0.0"

from .recurrence import (
    InvalidRecurrenceRule,
    Occurrence,
    ParsedRule,
    RecurrenceExpander,
    RecurringTask,
    TaskScheduler,
    build_task_schedule,
    create_simple_rule,
    expand_occurrences,
    get_all_occurrences_between,
    get_next_occurrence,
    is_valid_rule,
    parse_rule,
)
from .reminders import (
    BillReminder,
    DueDateCalculator,
    RecurrenceType,
    ReminderScheduler,
    UnsupportedRecurrenceType,
    build_reminder_schedule,
    calculate_next_due_date,
    generate_due_dates,
    plan_notifications,
)
from .timezone import TimezoneError, get_current_year_month

__all__ = [
    "BillReminder",
    "DueDateCalculator",
    "InvalidRecurrenceRule",
    "Occurrence",
    "ParsedRule",
    "RecurrenceExpander",
    "RecurrenceType",
    "RecurringTask",
    "ReminderScheduler",
    "TaskScheduler",
    "TimezoneError",
    "UnsupportedRecurrenceType",
    "__version__",
    "build_reminder_schedule",
    "build_task_schedule",
    "calculate_next_due_date",
    "create_simple_rule",
    "expand_occurrences",
    "generate_due_dates",
    "get_all_occurrences_between",
    "get_current_year_month",
    "get_next_occurrence",
    "is_valid_rule",
    "parse_rule",
    "plan_notifications",
]


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Run by the command line before settings are loaded so that configuration
    errors are visible. Callers may adjust the level later (e.g. from config).
    BUDGET_RECURRENCE_DEBUG (truthy values: "1", "true", "yes", "on") forces
    DEBUG verbosity.
    """
    from .utils.logging import configure_logging

    configure_logging(level_name)
