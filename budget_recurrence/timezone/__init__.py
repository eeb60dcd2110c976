"""
Time zone package for budget_recurrence.

Local wall-clock field extraction and calendar arithmetic for IANA zones.

Example usage:
    >>> from datetime import datetime, timezone
    >>> from budget_recurrence.timezone import get_zoned_date_parts, resolve_zone
    >>>
    >>> zone = resolve_zone("America/Sao_Paulo")
    >>> parts = get_zoned_date_parts(datetime(2026, 2, 1, 2, 0, tzinfo=timezone.utc), zone)
    >>> (parts.year, parts.month, parts.day)
    (2026, 1, 31)
"""

from .date_parts import (
    UTC,
    DateParts,
    TimezoneError,
    add_days_in_zone,
    add_days_to_parts,
    add_months_in_zone,
    create_datetime_in_zone,
    ensure_aware,
    get_current_year_month,
    get_zoned_date_parts,
    resolve_year_month_day,
    resolve_zone,
)

__all__ = [
    "UTC",
    "DateParts",
    "TimezoneError",
    "add_days_in_zone",
    "add_days_to_parts",
    "add_months_in_zone",
    "create_datetime_in_zone",
    "ensure_aware",
    "get_current_year_month",
    "get_zoned_date_parts",
    "resolve_year_month_day",
    "resolve_zone",
]
