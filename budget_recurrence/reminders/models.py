"""Data models for bill reminder due-date calculation."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .exceptions import UnsupportedRecurrenceType


class RecurrenceType(str, Enum):
    """Supported bill reminder recurrence types."""

    ONCE = "once"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class BillReminder(BaseModel):
    """Bill reminder descriptor as stored by the application.

    Accepts both snake_case and camelCase keys so rows can be validated
    directly (``BillReminder.model_validate(row)``). ``recurrence_type`` stays a
    plain string: ranges and formats are validated by the form layer before a
    reminder is stored, and an unknown type is reported by the calculator.
    """

    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    recurrence_type: str
    due_day: int
    start_month: str
    due_time: Optional[str] = None
    amount_cents: Optional[int] = None
    status: str = "active"

    notify_two_days_before: bool = True
    notify_one_day_before: bool = True
    notify_on_due_day: bool = True

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


@dataclass(frozen=True)
class DueTime:
    """Local time of day a reminder falls due (midnight when unspecified)."""

    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @classmethod
    def parse(cls, value: Optional[str]) -> "DueTime":
        """Parse ``HH:MM``; None or empty means midnight."""
        if not value:
            return cls()
        hours, minutes = value.split(":")[:2]
        return cls(hours=int(hours), minutes=int(minutes))


@dataclass(frozen=True)
class ReminderSchedule:
    """A reminder's recurrence, parsed once per calculation.

    Weekly reminders carry a ``weekday`` (0=Sunday..6=Saturday); every other
    type carries a ``day_of_month`` (1..31). ``start_year``/``start_month`` are
    only set for the types anchored at the start month.
    """

    recurrence_type: RecurrenceType
    due_time: DueTime
    weekday: Optional[int] = None
    day_of_month: Optional[int] = None
    start_year: Optional[int] = None
    start_month: Optional[int] = None

    @classmethod
    def from_reminder(cls, reminder: BillReminder) -> "ReminderSchedule":
        """Parse a BillReminder.

        Raises:
            UnsupportedRecurrenceType: If ``recurrence_type`` is not supported
        """
        try:
            recurrence_type = RecurrenceType(reminder.recurrence_type)
        except ValueError as e:
            raise UnsupportedRecurrenceType(reminder.recurrence_type, reminder.id) from e

        due_time = DueTime.parse(reminder.due_time)
        if recurrence_type is RecurrenceType.WEEKLY:
            return cls(recurrence_type, due_time, weekday=reminder.due_day)

        if recurrence_type is RecurrenceType.MONTHLY:
            return cls(recurrence_type, due_time, day_of_month=reminder.due_day)

        # Accepts "YYYY-MM" and tolerates a trailing day ("YYYY-MM-DD")
        year, month = reminder.start_month.split("-")[:2]
        return cls(
            recurrence_type,
            due_time,
            day_of_month=reminder.due_day,
            start_year=int(year),
            start_month=int(month),
        )


@dataclass(frozen=True)
class ScheduleEntry:
    """A bill reminder occurrence placed on the calendar."""

    id: str
    reminder_id: Optional[Union[int, str]]
    title: Optional[str]
    start: datetime
    end: datetime
    all_day: bool
    amount_cents: Optional[int] = None
    status: str = "active"


@dataclass(frozen=True)
class NotificationPlan:
    """A notification that should exist for the reminder's next due date.

    ``offset_minutes`` is relative to the due instant (-2880, -1440 or 0).
    """

    offset_minutes: int
    scheduled_at: datetime
    due_at: datetime
