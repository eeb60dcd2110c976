"""RRULE expansion logic for budget_recurrence."""

import logging
import re
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from itertools import islice
from typing import Any, Optional, Union

from dateutil.relativedelta import relativedelta
from dateutil.rrule import rrule

from ..timezone import ensure_aware
from .exceptions import InvalidRecurrenceRule
from .models import UNTIL_FORMAT, Frequency, Occurrence, ParsedRule

UTC = timezone.utc

logger = logging.getLogger(__name__)

SUPPORTED_KEYS = frozenset({"FREQ", "INTERVAL", "COUNT", "UNTIL"})

_UNTIL_RE = re.compile(r"^\d{8}T\d{6}Z$")
_INTEGER_RE = re.compile(r"^\d+$")


def _to_utc(dt: datetime) -> datetime:
    return ensure_aware(dt).astimezone(UTC)


class RecurrenceExpander:
    """Expands recurrence rules into concrete occurrences.

    Rules are validated against the supported RRULE subset (FREQ, INTERVAL,
    COUNT, UNTIL) and then handed to python-dateutil, always anchored at the
    item's base occurrence so that COUNT numbering does not depend on the
    window being viewed.
    """

    def __init__(self, settings: Optional[Any] = None):
        """Initialize RecurrenceExpander with settings.

        Args:
            settings: Optional RecurrenceSettings; defaults apply when omitted
        """
        self.settings = settings
        self.lookback_months = getattr(settings, "expansion_lookback_months", 1)
        self.lookahead_months = getattr(settings, "expansion_lookahead_months", 6)

    def parse_rule(self, rule_string: str) -> ParsedRule:
        """Parse an RRULE string into a ParsedRule.

        Args:
            rule_string: RRULE string (e.g. "FREQ=WEEKLY;INTERVAL=2;COUNT=10")

        Returns:
            Validated ParsedRule

        Raises:
            InvalidRecurrenceRule: If the string is malformed or uses anything
                outside the supported subset
        """
        if not isinstance(rule_string, str) or not rule_string.strip():
            raise InvalidRecurrenceRule("Empty recurrence rule", rule_string)

        text = rule_string.strip()
        if text.upper().startswith("RRULE:"):
            text = text[len("RRULE:") :]

        values: dict[str, str] = {}
        for raw_part in text.split(";"):
            part = raw_part.strip()
            if not part:
                continue
            if "=" not in part:
                raise InvalidRecurrenceRule(
                    f"Malformed rule part {part!r} in {rule_string!r}", rule_string
                )
            key, value = part.split("=", 1)
            key = key.strip().upper()
            if key not in SUPPORTED_KEYS:
                raise InvalidRecurrenceRule(
                    f"Unsupported rule parameter {key!r} in {rule_string!r}", rule_string
                )
            if key in values:
                raise InvalidRecurrenceRule(
                    f"Duplicate rule parameter {key!r} in {rule_string!r}", rule_string
                )
            values[key] = value.strip()

        if "FREQ" not in values:
            raise InvalidRecurrenceRule(
                f"Rule missing required FREQ parameter: {rule_string!r}", rule_string
            )

        return ParsedRule(
            frequency=self._parse_frequency(values["FREQ"], rule_string),
            interval=self._parse_positive_int("INTERVAL", values.get("INTERVAL", "1"), rule_string),
            count=(
                self._parse_positive_int("COUNT", values["COUNT"], rule_string)
                if "COUNT" in values
                else None
            ),
            until=self._parse_until(values["UNTIL"], rule_string) if "UNTIL" in values else None,
        )

    def is_valid_rule(self, rule_string: str) -> bool:
        """Return True when ``rule_string`` parses; never raises."""
        try:
            self.parse_rule(rule_string)
        except InvalidRecurrenceRule as e:
            logger.debug("Rejected recurrence rule %r: %s", rule_string, e.message)
            return False
        return True

    def iter_occurrences(
        self, rule: Union[str, ParsedRule], base_start_at: datetime
    ) -> Iterator[datetime]:
        """Yield every occurrence of ``rule`` from the base onwards, as aware UTC.

        Naive bases are taken as UTC. Aware bases keep their zone while the
        rule is evaluated, so the local time of day survives DST changes.
        Sub-second precision of the base is carried onto every occurrence.
        Unbounded rules produce an infinite iterator.
        """
        parsed = rule if isinstance(rule, ParsedRule) else self.parse_rule(rule)
        dtstart = ensure_aware(base_start_at)
        # rrule truncates dtstart to whole seconds
        offset = timedelta(microseconds=dtstart.microsecond)

        occurrences: Iterator[datetime] = iter(
            rrule(
                parsed.frequency.dateutil_freq,
                dtstart=dtstart.replace(microsecond=0),
                interval=parsed.interval,
            )
        )
        if parsed.count is not None:
            occurrences = islice(occurrences, parsed.count)

        for occurrence in occurrences:
            shifted = occurrence.astimezone(UTC) + offset
            if parsed.until is not None and shifted > parsed.until:
                return
            yield shifted

    def _iter_window(
        self,
        parsed: ParsedRule,
        base_start_at: datetime,
        window_start: datetime,
        window_end: datetime,
    ) -> Iterator[tuple[int, datetime]]:
        """Yield (sequence, start) for occurrences inside [window_start, window_end]."""
        for sequence, occurrence in enumerate(self.iter_occurrences(parsed, base_start_at)):
            if occurrence > window_end:
                break
            if occurrence >= window_start:
                yield sequence, occurrence

    def expand_occurrences(
        self,
        rule_string: str,
        window_start: datetime,
        window_end: datetime,
        base_start_at: datetime,
        item_type: str = "event",
        base_end_at: Optional[datetime] = None,
        base_due_at: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
    ) -> list[Occurrence]:
        """Expand a rule into the occurrences whose start lies inside a window.

        Args:
            rule_string: RRULE string
            window_start: Window start (inclusive)
            window_end: Window end (inclusive)
            base_start_at: Start of the base occurrence; anchors pattern and COUNT
            item_type: "event" or "task", copied onto every occurrence
            base_end_at: Optional end of the base occurrence; its duration is
                applied to every expanded occurrence
            base_due_at: Optional due instant of the base occurrence (tasks);
                every occurrence is due at the same distance from its start
            duration_minutes: Used for ``due_at`` when ``base_due_at`` is not
                given: each occurrence is due this many minutes after its start

        Returns:
            Occurrences ordered by start

        Raises:
            InvalidRecurrenceRule: If the rule string cannot be parsed
        """
        parsed = self.parse_rule(rule_string)
        start = _to_utc(window_start)
        end = _to_utc(window_end)

        logger.debug(
            "Recurrence expansion: rule=%s base=%s window_start=%s window_end=%s item_type=%s",
            rule_string,
            base_start_at.isoformat(),
            start.isoformat(),
            end.isoformat(),
            item_type,
        )

        if start > end:
            logger.debug("Recurrence expansion: empty window (start after end)")
            return []

        base = _to_utc(base_start_at)
        duration = _to_utc(base_end_at) - base if base_end_at is not None else None
        if base_due_at is not None:
            due_offset: Optional[timedelta] = _to_utc(base_due_at) - base
        elif duration_minutes:
            due_offset = timedelta(minutes=duration_minutes)
        else:
            due_offset = None

        occurrences = [
            Occurrence(
                start_at=occurrence,
                end_at=occurrence + duration if duration is not None else None,
                item_type=item_type,
                sequence=sequence,
                due_at=occurrence + due_offset if due_offset is not None else None,
            )
            for sequence, occurrence in self._iter_window(parsed, base_start_at, start, end)
        ]

        logger.debug(
            "Recurrence expansion result: rule=%s occurrences=%d sample=%s",
            rule_string,
            len(occurrences),
            [occ.start_at.isoformat() for occ in occurrences[:5]],
        )
        return occurrences

    def get_next_occurrence(
        self,
        rule_string: str,
        from_instant: datetime,
        base_start_at: Optional[datetime] = None,
    ) -> Optional[datetime]:
        """Return the first occurrence strictly after ``from_instant``.

        The rule is anchored at ``base_start_at``, or at ``from_instant`` when no
        base is given. Returns None once COUNT or UNTIL has been exhausted.
        """
        parsed = self.parse_rule(rule_string)
        after = _to_utc(from_instant)
        anchor = base_start_at if base_start_at is not None else from_instant

        for occurrence in self.iter_occurrences(parsed, anchor):
            if occurrence > after:
                return occurrence

        logger.debug("Rule %s exhausted before %s", rule_string, after.isoformat())
        return None

    def get_all_occurrences_between(
        self,
        rule_string: str,
        window_start: datetime,
        window_end: datetime,
        base_start_at: Optional[datetime] = None,
    ) -> list[datetime]:
        """Like expand_occurrences but returning bare start instants.

        The rule is anchored at ``base_start_at``, or at ``window_start`` when
        no base is given.
        """
        parsed = self.parse_rule(rule_string)
        start = _to_utc(window_start)
        end = _to_utc(window_end)
        if start > end:
            return []

        anchor = base_start_at if base_start_at is not None else window_start
        return [occurrence for _, occurrence in self._iter_window(parsed, anchor, start, end)]

    def create_simple_rule(
        self,
        frequency: Union[str, Frequency],
        interval: int = 1,
        count: Optional[int] = None,
        until: Optional[datetime] = None,
    ) -> str:
        """Build a canonical rule string.

        A count of 0 (or None) leaves COUNT out.

        Examples:
            create_simple_rule("DAILY", 1) -> "FREQ=DAILY;INTERVAL=1"
            create_simple_rule("DAILY", 1, 5, until) -> "FREQ=DAILY;INTERVAL=1;COUNT=5;UNTIL=..."

        Raises:
            InvalidRecurrenceRule: For an unsupported frequency, a
                non-positive interval or a negative count
        """
        freq_value = frequency.value if isinstance(frequency, Frequency) else str(frequency)
        parsed = ParsedRule(
            frequency=self._parse_frequency(freq_value, freq_value),
            interval=self._parse_positive_int("INTERVAL", str(interval), freq_value),
            count=(
                self._parse_positive_int("COUNT", str(count), freq_value)
                if count
                else None
            ),
            until=_to_utc(until).replace(microsecond=0) if until is not None else None,
        )
        return parsed.to_rule_string()

    def resolve_expansion_window(
        self,
        rule_string: str,
        base_start_at: datetime,
        now: Optional[datetime] = None,
    ) -> tuple[datetime, datetime]:
        """Choose the window to expand a recurring item over.

        Bounded rules span the base occurrence to UNTIL (or the last COUNT
        occurrence). Unbounded rules span from the base, or from
        ``lookback_months`` before now for items that started in the past, to
        ``lookahead_months`` after the later of base and now.
        """
        parsed = self.parse_rule(rule_string)
        base = _to_utc(base_start_at)
        current = _to_utc(now) if now is not None else datetime.now(UTC)

        if parsed.is_bounded:
            if parsed.until is not None:
                range_end = parsed.until
            else:
                range_end = base
                for occurrence in self.iter_occurrences(parsed, base_start_at):
                    range_end = occurrence
            return base, max(range_end, base)

        if base > current:
            return base, base + relativedelta(months=self.lookahead_months)

        range_start = current - relativedelta(months=self.lookback_months)
        return range_start, current + relativedelta(months=self.lookahead_months)

    @staticmethod
    def _parse_frequency(value: str, rule_string: str) -> Frequency:
        try:
            return Frequency(value.strip().upper())
        except ValueError as e:
            raise InvalidRecurrenceRule(
                f"Unsupported frequency {value!r} in {rule_string!r}", rule_string
            ) from e

    @staticmethod
    def _parse_positive_int(key: str, value: str, rule_string: str) -> int:
        if not _INTEGER_RE.match(value.strip()):
            raise InvalidRecurrenceRule(
                f"{key} must be a positive integer, got {value!r}", rule_string
            )
        number = int(value)
        if number < 1:
            raise InvalidRecurrenceRule(f"{key} must be at least 1, got {number}", rule_string)
        return number

    @staticmethod
    def _parse_until(value: str, rule_string: str) -> datetime:
        if not _UNTIL_RE.match(value):
            raise InvalidRecurrenceRule(
                f"UNTIL must be a UTC timestamp like 20251231T235959Z, got {value!r}",
                rule_string,
            )
        try:
            return datetime.strptime(value, UNTIL_FORMAT).replace(tzinfo=UTC)
        except ValueError as e:
            raise InvalidRecurrenceRule(f"Invalid UNTIL value {value!r}", rule_string) from e


# Shared instance backing the module-level helpers
_expander = RecurrenceExpander()


def parse_rule(rule_string: str) -> ParsedRule:
    """Parse an RRULE string (convenience function)."""
    return _expander.parse_rule(rule_string)


def is_valid_rule(rule_string: str) -> bool:
    """Check whether an RRULE string is valid (convenience function)."""
    return _expander.is_valid_rule(rule_string)


def expand_occurrences(
    rule_string: str,
    window_start: datetime,
    window_end: datetime,
    base_start_at: datetime,
    item_type: str = "event",
    base_end_at: Optional[datetime] = None,
    base_due_at: Optional[datetime] = None,
    duration_minutes: Optional[int] = None,
) -> list[Occurrence]:
    """Expand occurrences inside a window (convenience function)."""
    return _expander.expand_occurrences(
        rule_string,
        window_start,
        window_end,
        base_start_at,
        item_type,
        base_end_at,
        base_due_at,
        duration_minutes,
    )


def get_next_occurrence(
    rule_string: str, from_instant: datetime, base_start_at: Optional[datetime] = None
) -> Optional[datetime]:
    """Get the next occurrence after an instant (convenience function)."""
    return _expander.get_next_occurrence(rule_string, from_instant, base_start_at)


def get_all_occurrences_between(
    rule_string: str,
    window_start: datetime,
    window_end: datetime,
    base_start_at: Optional[datetime] = None,
) -> list[datetime]:
    """Get occurrence instants inside a window (convenience function)."""
    return _expander.get_all_occurrences_between(
        rule_string, window_start, window_end, base_start_at
    )


def create_simple_rule(
    frequency: Union[str, Frequency],
    interval: int = 1,
    count: Optional[int] = None,
    until: Optional[datetime] = None,
) -> str:
    """Build a canonical rule string (convenience function)."""
    return _expander.create_simple_rule(frequency, interval, count, until)
