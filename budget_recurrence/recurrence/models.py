"""Value types for recurrence rules, their occurrences and recurring tasks."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, YEARLY
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

UNTIL_FORMAT = "%Y%m%dT%H%M%SZ"


class Frequency(str, Enum):
    """Supported RRULE frequencies."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"

    @property
    def dateutil_freq(self) -> int:
        return _DATEUTIL_FREQ[self]


_DATEUTIL_FREQ = {
    Frequency.DAILY: DAILY,
    Frequency.WEEKLY: WEEKLY,
    Frequency.MONTHLY: MONTHLY,
    Frequency.YEARLY: YEARLY,
}


def format_until(until: datetime) -> str:
    """Format an instant as an RFC 5545 basic UTC timestamp (20251231T235959Z)."""
    if until.tzinfo is None:
        until = until.replace(tzinfo=timezone.utc)
    return until.astimezone(timezone.utc).strftime(UNTIL_FORMAT)


@dataclass(frozen=True)
class ParsedRule:
    """A validated recurrence rule.

    ``until`` is always an aware UTC datetime when present. COUNT and UNTIL may
    both be set; whichever limit is reached first ends the sequence.
    """

    frequency: Frequency
    interval: int = 1
    count: Optional[int] = None
    until: Optional[datetime] = None

    @property
    def is_bounded(self) -> bool:
        return self.count is not None or self.until is not None

    def to_rule_string(self) -> str:
        """Canonical ``FREQ=..;INTERVAL=..[;COUNT=..][;UNTIL=..]`` form."""
        parts = [f"FREQ={self.frequency.value}", f"INTERVAL={self.interval}"]
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        if self.until is not None:
            parts.append(f"UNTIL={format_until(self.until)}")
        return ";".join(parts)


@dataclass(frozen=True)
class Occurrence:
    """One concrete instance of a recurring event or task.

    ``sequence`` is the zero-based position counted from the base occurrence,
    so it is the same whichever window the occurrence was expanded in.
    ``due_at`` is only set for items that carry a due instant (tasks).
    """

    start_at: datetime
    end_at: Optional[datetime] = None
    item_type: str = "event"
    sequence: int = 0
    due_at: Optional[datetime] = None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.end_at is None:
            return None
        return self.end_at - self.start_at


class RecurringTask(BaseModel):
    """Task row as stored by the application, with its optional recurrence rule.

    Accepts both snake_case and camelCase keys. A task spans
    ``start_at`` .. ``start_at + duration_minutes`` when both are set and is a
    point at ``due_at`` otherwise.
    """

    id: Optional[Union[int, str]] = None
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    due_at: datetime
    start_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    priority: str = "medium"
    status: str = "pending"
    recurrence_rule: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


@dataclass(frozen=True)
class TaskScheduleEntry:
    """A task occurrence placed on the calendar."""

    id: str
    task_id: Optional[Union[int, str]]
    title: Optional[str]
    start: datetime
    end: datetime
    description: Optional[str] = None
    location: Optional[str] = None
    priority: str = "medium"
    status: str = "pending"
