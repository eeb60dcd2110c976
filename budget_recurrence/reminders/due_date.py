"""Next due date calculation for bill reminders.

All calendar reasoning happens in the reminder's local zone: "today", "this
month" and "is the due instant already behind us" are decided on local
wall-clock fields, and due instants are rebuilt from local fields so a reminder
due at 09:00 stays at 09:00 local on both sides of a DST change.

When no zone is given (neither per call nor in settings) the host's local zone
is used.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Optional, Union

from ..timezone import (
    add_days_to_parts,
    create_datetime_in_zone,
    ensure_aware,
    get_zoned_date_parts,
    resolve_year_month_day,
    resolve_zone,
)
from .models import BillReminder, RecurrenceType, ReminderSchedule

UTC = timezone.utc

logger = logging.getLogger(__name__)

_NO_GRACE = timedelta(0)

ReminderLike = Union[BillReminder, Mapping[str, Any]]


def as_bill_reminder(reminder: ReminderLike) -> BillReminder:
    """Accept a BillReminder or a stored row mapping."""
    if isinstance(reminder, BillReminder):
        return reminder
    return BillReminder.model_validate(reminder)


class DueDateCalculator:
    """Computes the next due instant of a bill reminder."""

    def __init__(self, settings: Optional[Any] = None):
        """Initialize DueDateCalculator.

        Args:
            settings: Optional RecurrenceSettings supplying the default zone
                and grace window
        """
        self.settings = settings
        self.default_time_zone: Optional[str] = getattr(settings, "default_time_zone", None)
        self.default_grace_window = timedelta(
            minutes=getattr(settings, "grace_window_minutes", 0) or 0
        )
        self._handlers: dict[
            RecurrenceType, Callable[[ReminderSchedule, datetime, tzinfo, timedelta], datetime]
        ] = {
            RecurrenceType.ONCE: self._next_once,
            RecurrenceType.WEEKLY: self._next_weekly,
            RecurrenceType.BIWEEKLY: self._next_biweekly,
            RecurrenceType.MONTHLY: self._next_monthly,
            RecurrenceType.QUARTERLY: self._next_quarterly,
            RecurrenceType.YEARLY: self._next_yearly,
        }

    def calculate_next_due_date(
        self,
        reminder: ReminderLike,
        now: Optional[datetime] = None,
        time_zone: Optional[str] = None,
        grace_window: Optional[timedelta] = None,
    ) -> datetime:
        """Calculate the next due date for a bill reminder.

        Args:
            reminder: BillReminder (or stored row mapping)
            now: Reference instant; naive values are taken as UTC. Defaults to
                the current time.
            time_zone: IANA zone whose local calendar decides days and months
            grace_window: How long after a monthly due instant it is still
                reported as current instead of rolling to next month

        Returns:
            Aware datetime in the resolved zone. Strictly after ``now`` except
            for "once" reminders (never rolled) and monthly reminders inside
            the grace window.

        Raises:
            UnsupportedRecurrenceType: If the reminder's recurrence type is unknown
            TimezoneError: If ``time_zone`` is not a known IANA zone
        """
        reminder = as_bill_reminder(reminder)
        schedule = ReminderSchedule.from_reminder(reminder)
        zone = resolve_zone(time_zone or self.default_time_zone)
        current = ensure_aware(now) if now is not None else datetime.now(UTC)
        grace = grace_window if grace_window is not None else self.default_grace_window

        due = self._handlers[schedule.recurrence_type](schedule, current, zone, grace)

        logger.debug(
            "Next due date: reminder=%s type=%s due_day=%s zone=%s now=%s -> %s",
            reminder.id,
            schedule.recurrence_type.value,
            reminder.due_day,
            time_zone or self.default_time_zone or "local",
            current.isoformat(),
            due.isoformat(),
        )
        return due

    @staticmethod
    def _build(schedule: ReminderSchedule, zone: tzinfo, year: int, month: int, day: int) -> datetime:
        due_time = schedule.due_time
        return create_datetime_in_zone(
            year, month, day, due_time.hours, due_time.minutes, due_time.seconds, zone
        )

    @staticmethod
    def _within_grace(candidate: datetime, now: datetime, grace: timedelta) -> bool:
        return grace > _NO_GRACE and _NO_GRACE < now - candidate <= grace

    def _next_once(
        self, schedule: ReminderSchedule, now: datetime, zone: tzinfo, grace: timedelta
    ) -> datetime:
        # Never rolled forward; a past one-off reminder stays in the past.
        return self._build(
            schedule, zone, schedule.start_year, schedule.start_month, schedule.day_of_month
        )

    def _next_weekly(
        self, schedule: ReminderSchedule, now: datetime, zone: tzinfo, grace: timedelta
    ) -> datetime:
        today = get_zoned_date_parts(now, zone)
        days_until = (schedule.weekday - today.weekday()) % 7

        if days_until == 0:
            due_today = self._build(schedule, zone, today.year, today.month, today.day)
            if due_today <= now:
                days_until = 7

        target = add_days_to_parts(today, days_until)
        return self._build(schedule, zone, target.year, target.month, target.day)

    def _next_biweekly(
        self, schedule: ReminderSchedule, now: datetime, zone: tzinfo, grace: timedelta
    ) -> datetime:
        anchor = resolve_year_month_day(
            schedule.start_year, schedule.start_month, schedule.day_of_month
        )
        today = get_zoned_date_parts(now, zone).date()
        # Start one period short of the elapsed count; at most a few steps remain.
        periods = max(0, (today - anchor).days // 14 - 1)

        while True:
            candidate = self._build(
                schedule, zone, anchor.year, anchor.month, anchor.day + 14 * periods
            )
            if candidate > now:
                return candidate
            periods += 1

    def _next_monthly(
        self, schedule: ReminderSchedule, now: datetime, zone: tzinfo, grace: timedelta
    ) -> datetime:
        today = get_zoned_date_parts(now, zone)
        candidate = self._build(schedule, zone, today.year, today.month, schedule.day_of_month)

        if candidate <= now and not self._within_grace(candidate, now, grace):
            candidate = self._build(
                schedule, zone, today.year, today.month + 1, schedule.day_of_month
            )
        return candidate

    def _next_quarterly(
        self, schedule: ReminderSchedule, now: datetime, zone: tzinfo, grace: timedelta
    ) -> datetime:
        current = resolve_year_month_day(
            schedule.start_year, schedule.start_month, schedule.day_of_month
        )
        candidate = self._build(schedule, zone, current.year, current.month, current.day)
        # Each step adds 3 months to the previous resolved date, so overflow carries forward
        while candidate <= now:
            current = resolve_year_month_day(current.year, current.month + 3, current.day)
            candidate = self._build(schedule, zone, current.year, current.month, current.day)
        return candidate

    def _next_yearly(
        self, schedule: ReminderSchedule, now: datetime, zone: tzinfo, grace: timedelta
    ) -> datetime:
        today = get_zoned_date_parts(now, zone)
        this_year = resolve_year_month_day(today.year, schedule.start_month, schedule.day_of_month)
        candidate = self._build(schedule, zone, this_year.year, this_year.month, this_year.day)
        if candidate <= now:
            # Roll the resolved date, so Feb 29 becomes Mar 1 of next year
            candidate = self._build(
                schedule, zone, this_year.year + 1, this_year.month, this_year.day
            )
        return candidate


# Shared instance backing the module-level helper
_calculator = DueDateCalculator()


def calculate_next_due_date(
    reminder: ReminderLike,
    now: Optional[datetime] = None,
    time_zone: Optional[str] = None,
    grace_window: Optional[timedelta] = None,
) -> datetime:
    """Calculate the next due date of a reminder (convenience function)."""
    return _calculator.calculate_next_due_date(
        reminder, now=now, time_zone=time_zone, grace_window=grace_window
    )
