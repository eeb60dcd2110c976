"""Calendar placement and notification planning for bill reminders.

Both helpers are pure: they return what should exist (calendar entries,
notification times) and leave diffing against stored jobs and persistence to
the caller.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..timezone import add_days_in_zone, create_datetime_in_zone, ensure_aware, resolve_zone
from .due_date import DueDateCalculator, ReminderLike, as_bill_reminder
from .exceptions import ReminderError
from .models import BillReminder, NotificationPlan, RecurrenceType, ScheduleEntry

UTC = timezone.utc

logger = logging.getLogger(__name__)

# (flag on BillReminder, offset in minutes, local days before the due date)
NOTIFICATION_OFFSETS = (
    ("notify_two_days_before", -2880, 2),
    ("notify_one_day_before", -1440, 1),
    ("notify_on_due_day", 0, 0),
)

TIMED_ENTRY_DURATION = timedelta(hours=1)

_EPSILON = timedelta(microseconds=1)


def _reminder_id(raw: ReminderLike) -> Any:
    if isinstance(raw, Mapping):
        return raw.get("id")
    return getattr(raw, "id", None)


class ReminderScheduler:
    """Places reminder due dates on a calendar view and plans notifications."""

    def __init__(
        self,
        settings: Optional[Any] = None,
        calculator: Optional[DueDateCalculator] = None,
    ):
        """Initialize ReminderScheduler.

        Args:
            settings: Optional RecurrenceSettings
            calculator: DueDateCalculator to use; built from settings when omitted
        """
        self.settings = settings
        self.calculator = calculator or DueDateCalculator(settings)
        self.max_iterations = getattr(settings, "schedule_max_iterations", 366)
        self.notification_horizon = timedelta(
            days=getattr(settings, "notification_horizon_days", 7)
        )

    def generate_due_dates(
        self,
        reminder: ReminderLike,
        view_start: datetime,
        view_end: datetime,
        time_zone: Optional[str] = None,
    ) -> list[datetime]:
        """Return every due instant of a reminder inside [view_start, view_end].

        Raises:
            UnsupportedRecurrenceType: If the reminder's recurrence type is unknown
        """
        reminder = as_bill_reminder(reminder)
        start = ensure_aware(view_start)
        end = ensure_aware(view_end)
        if start > end:
            return []

        if reminder.recurrence_type == RecurrenceType.ONCE.value:
            due = self.calculator.calculate_next_due_date(reminder, now=start, time_zone=time_zone)
            return [due] if start <= due <= end else []

        due_dates: list[datetime] = []
        # Just before the view so a due instant exactly at view_start is included
        cursor = start - _EPSILON
        for _ in range(self.max_iterations):
            due = self.calculator.calculate_next_due_date(
                reminder, now=cursor, time_zone=time_zone, grace_window=timedelta(0)
            )
            if due > end:
                break
            due_dates.append(due)
            cursor = due
        else:
            logger.warning(
                "Reminder %s reached %d due dates before the end of the view; truncating",
                reminder.id,
                self.max_iterations,
            )

        return due_dates

    def build_schedule(
        self,
        reminders: Iterable[ReminderLike],
        view_start: datetime,
        view_end: datetime,
        time_zone: Optional[str] = None,
    ) -> list[ScheduleEntry]:
        """Build calendar entries for all reminders in a view.

        Reminders without a due time become all-day entries for their local
        day; timed reminders last one hour. A reminder whose data cannot be
        scheduled is logged and skipped.
        """
        zone_name = time_zone or self.calculator.default_time_zone
        zone = resolve_zone(zone_name)
        entries: list[ScheduleEntry] = []

        for raw in reminders:
            try:
                reminder = as_bill_reminder(raw)
                due_dates = self.generate_due_dates(reminder, view_start, view_end, zone_name)
            except (ReminderError, ValueError):
                logger.exception("Failed to schedule bill reminder %r", _reminder_id(raw))
                continue

            for index, due in enumerate(due_dates):
                entries.append(self._build_entry(reminder, due, index, zone))

        logger.debug(
            "Built reminder schedule: entries=%d view_start=%s view_end=%s",
            len(entries),
            view_start.isoformat(),
            view_end.isoformat(),
        )
        return entries

    def plan_notifications(
        self,
        reminder: ReminderLike,
        now: Optional[datetime] = None,
        time_zone: Optional[str] = None,
        horizon: Optional[timedelta] = None,
    ) -> list[NotificationPlan]:
        """Plan the notifications for a reminder's next due date.

        Nothing is planned when the reminder is not active or its next due
        date lies beyond ``horizon``. Offsets whose time has already passed
        are dropped.
        """
        reminder = as_bill_reminder(reminder)
        if reminder.status != "active":
            logger.debug("Skipping notifications for %s reminder %s", reminder.status, reminder.id)
            return []

        current = ensure_aware(now) if now is not None else datetime.now(UTC)
        window = horizon if horizon is not None else self.notification_horizon
        due = self.calculator.calculate_next_due_date(reminder, now=current, time_zone=time_zone)
        if due > current + window:
            return []

        zone = resolve_zone(time_zone or self.calculator.default_time_zone)
        plans = []
        for flag, offset_minutes, days_before in NOTIFICATION_OFFSETS:
            if not getattr(reminder, flag):
                continue
            scheduled_at = add_days_in_zone(due, zone, -days_before) if days_before else due
            if scheduled_at > current:
                plans.append(NotificationPlan(offset_minutes, scheduled_at, due))
        return plans

    @staticmethod
    def _build_entry(
        reminder: BillReminder, due: datetime, index: int, zone: Any
    ) -> ScheduleEntry:
        if reminder.due_time:
            start = due
            end = due + TIMED_ENTRY_DURATION
        else:
            local = due.astimezone(zone)
            start = create_datetime_in_zone(local.year, local.month, local.day, 0, 0, 0, zone)
            end = create_datetime_in_zone(local.year, local.month, local.day, 23, 59, 59, zone)

        if index == 0:
            entry_id = f"bill-reminder-{reminder.id}"
        else:
            entry_id = f"bill-reminder-{reminder.id}-occ-{int(due.timestamp() * 1000)}"

        return ScheduleEntry(
            id=entry_id,
            reminder_id=reminder.id,
            title=reminder.name,
            start=start,
            end=end,
            all_day=not reminder.due_time,
            amount_cents=reminder.amount_cents,
            status=reminder.status,
        )


# Shared instance backing the module-level helpers
_scheduler = ReminderScheduler()


def generate_due_dates(
    reminder: ReminderLike,
    view_start: datetime,
    view_end: datetime,
    time_zone: Optional[str] = None,
) -> list[datetime]:
    """Due instants of a reminder inside a view (convenience function)."""
    return _scheduler.generate_due_dates(reminder, view_start, view_end, time_zone)


def build_reminder_schedule(
    reminders: Iterable[ReminderLike],
    view_start: datetime,
    view_end: datetime,
    time_zone: Optional[str] = None,
) -> list[ScheduleEntry]:
    """Calendar entries for reminders inside a view (convenience function)."""
    return _scheduler.build_schedule(reminders, view_start, view_end, time_zone)


def plan_notifications(
    reminder: ReminderLike,
    now: Optional[datetime] = None,
    time_zone: Optional[str] = None,
    horizon: Optional[timedelta] = None,
) -> list[NotificationPlan]:
    """Notification plan for a reminder's next due date (convenience function)."""
    return _scheduler.plan_notifications(reminder, now, time_zone, horizon)
