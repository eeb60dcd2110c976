"""Bill reminder due dates, calendar placement and notification planning."""

from .due_date import DueDateCalculator, as_bill_reminder, calculate_next_due_date
from .exceptions import ReminderError, UnsupportedRecurrenceType
from .models import (
    BillReminder,
    DueTime,
    NotificationPlan,
    RecurrenceType,
    ReminderSchedule,
    ScheduleEntry,
)
from .schedule import (
    ReminderScheduler,
    build_reminder_schedule,
    generate_due_dates,
    plan_notifications,
)

__all__ = [
    "BillReminder",
    "DueDateCalculator",
    "DueTime",
    "NotificationPlan",
    "RecurrenceType",
    "ReminderError",
    "ReminderSchedule",
    "ReminderScheduler",
    "ScheduleEntry",
    "UnsupportedRecurrenceType",
    "as_bill_reminder",
    "build_reminder_schedule",
    "calculate_next_due_date",
    "generate_due_dates",
    "plan_notifications",
]
