"""Zoned wall-clock helpers for budget_recurrence.

Every calendar decision made by the due-date calculator (which day is
"today", which month is "this month", is a due instant before "now") has to be
taken in the reminder owner's local calendar, not in UTC. This module splits an
instant into local fields for a zone, does calendar arithmetic on those fields,
and turns local fields back into an aware instant.

zoneinfo does the offset bookkeeping; dateutil's ``tzlocal`` stands in for the
host zone when the caller does not name one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import tz

logger = logging.getLogger(__name__)

UTC = timezone.utc


class TimezoneError(Exception):
    """Raised when a time zone name cannot be resolved."""

    def __init__(self, message: str, time_zone: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.time_zone = time_zone


@dataclass(frozen=True)
class DateParts:
    """Local wall-clock fields of an instant in a specific zone."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0

    def date(self) -> date:
        return date(self.year, self.month, self.day)

    def weekday(self) -> int:
        """Day of week with 0=Sunday .. 6=Saturday."""
        return self.date().isoweekday() % 7


def resolve_zone(time_zone: Optional[str]) -> tzinfo:
    """Return a tzinfo for an IANA name, or the host zone when name is None.

    Raises:
        TimezoneError: If the name is not a known IANA zone.
    """
    if not time_zone:
        return tz.tzlocal()

    try:
        return ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise TimezoneError(f"Unknown time zone: {time_zone!r}", time_zone) from e


def ensure_aware(instant: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant


def get_zoned_date_parts(instant: datetime, zone: tzinfo) -> DateParts:
    """Split an instant into the zone's local wall-clock fields."""
    local = ensure_aware(instant).astimezone(zone)
    return DateParts(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        second=local.second,
    )


def resolve_year_month_day(year: int, month: int, day: int) -> date:
    """Resolve possibly out-of-range fields the way a lenient calendar does.

    Month overflow carries into the year and day overflow carries into the
    following month(s): (2026, 2, 31) -> 2026-03-03, (2025, 13, 1) -> 2026-01-01,
    (2026, 3, 0) -> 2026-02-28.
    """
    years, month_index = divmod(month - 1, 12)
    first_of_month = date(year + years, month_index + 1, 1)
    return first_of_month + timedelta(days=day - 1)


def add_days_to_parts(parts: DateParts, days: int) -> date:
    """Shift the calendar date of ``parts`` by whole local days."""
    return resolve_year_month_day(parts.year, parts.month, parts.day + days)


def create_datetime_in_zone(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    zone: tzinfo,
) -> datetime:
    """Build the aware instant for a local wall-clock time in ``zone``.

    Out-of-range dates are resolved with :func:`resolve_year_month_day` first.
    Wall times that fall inside a spring-forward gap are mapped with the
    pre-transition offset and come back as the real wall time after the jump;
    ambiguous fall-back times resolve to their first occurrence.
    """
    resolved = resolve_year_month_day(year, month, day)
    local = datetime(
        resolved.year, resolved.month, resolved.day, hour, minute, second, tzinfo=zone
    )
    # Round-trip through UTC so gap times are normalised to an existing wall time.
    return local.astimezone(UTC).astimezone(zone)


def add_days_in_zone(instant: datetime, zone: tzinfo, days: int) -> datetime:
    """Add local calendar days, keeping the local time of day across DST."""
    parts = get_zoned_date_parts(instant, zone)
    return create_datetime_in_zone(
        parts.year, parts.month, parts.day + days, parts.hour, parts.minute, parts.second, zone
    )


def add_months_in_zone(instant: datetime, zone: tzinfo, months: int) -> datetime:
    """Add local calendar months; day overflow rolls into the next month."""
    parts = get_zoned_date_parts(instant, zone)
    return create_datetime_in_zone(
        parts.year, parts.month + months, parts.day, parts.hour, parts.minute, parts.second, zone
    )


def get_current_year_month(time_zone: Optional[str], now: Optional[datetime] = None) -> str:
    """Return the zone's local ``YYYY-MM`` for ``now``."""
    zone = resolve_zone(time_zone)
    parts = get_zoned_date_parts(now or datetime.now(UTC), zone)
    return f"{parts.year}-{parts.month:02d}"
