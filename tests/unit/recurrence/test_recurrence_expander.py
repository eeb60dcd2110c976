"""Tests for RecurrenceExpander occurrence expansion.

Covers:
- window bounds and inclusive UNTIL
- COUNT numbered from the base occurrence regardless of window
- durations and task due offsets carried from the base occurrence
- sub-second base instants
- local time of day preserved across DST for zoned bases
- window selection for bounded and unbounded rules
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from budget_recurrence.recurrence import (
    InvalidRecurrenceRule,
    RecurrenceExpander,
    expand_occurrences,
    get_all_occurrences_between,
    get_next_occurrence,
)

pytestmark = pytest.mark.unit

UTC = timezone.utc


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


BASE = utc(2025, 1, 1, 9, 0)


class TestExpandOccurrences:
    """expand_occurrences() window behaviour."""

    def test_daily_rule_in_five_day_window(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY;INTERVAL=1", utc(2025, 1, 1), utc(2025, 1, 5, 23, 59, 59), BASE
        )

        assert [occ.start_at for occ in occurrences] == [
            utc(2025, 1, day, 9, 0) for day in range(1, 6)
        ]
        assert all(occ.item_type == "event" for occ in occurrences)
        assert all(occ.end_at is None for occ in occurrences)
        assert all(occ.due_at is None for occ in occurrences)

    def test_duration_copied_from_base(self):
        occurrences = expand_occurrences(
            "FREQ=WEEKLY",
            utc(2025, 1, 1),
            utc(2025, 1, 31),
            BASE,
            item_type="task",
            base_end_at=utc(2025, 1, 1, 11, 30),
        )

        assert len(occurrences) == 5
        for occ in occurrences:
            assert occ.duration == timedelta(hours=2, minutes=30)
            assert occ.item_type == "task"

    def test_due_at_keeps_offset_from_base_due(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY;COUNT=3",
            utc(2025, 1, 1),
            utc(2025, 1, 31),
            BASE,
            item_type="task",
            base_due_at=utc(2025, 1, 1, 17, 0),
            duration_minutes=30,
        )

        assert [occ.due_at for occ in occurrences] == [
            utc(2025, 1, day, 17, 0) for day in (1, 2, 3)
        ]

    def test_due_at_from_duration_minutes(self):
        occurrences = expand_occurrences(
            "FREQ=WEEKLY;COUNT=2",
            utc(2025, 1, 1),
            utc(2025, 1, 31),
            BASE,
            item_type="task",
            duration_minutes=45,
        )

        assert [occ.due_at for occ in occurrences] == [
            utc(2025, 1, 1, 9, 45),
            utc(2025, 1, 8, 9, 45),
        ]

    def test_count_limits_occurrences(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY;COUNT=3", utc(2025, 1, 1), utc(2025, 1, 31), BASE
        )

        assert [occ.start_at.day for occ in occurrences] == [1, 2, 3]

    def test_until_is_inclusive(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY;UNTIL=20250103T090000Z", utc(2025, 1, 1), utc(2025, 1, 31), BASE
        )

        assert occurrences[-1].start_at == utc(2025, 1, 3, 9, 0)
        assert len(occurrences) == 3

    def test_count_and_until_first_limit_wins(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY;COUNT=10;UNTIL=20250104T000000Z", utc(2025, 1, 1), utc(2025, 1, 31), BASE
        )

        assert len(occurrences) == 3

    def test_window_boundaries_are_inclusive(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY", utc(2025, 1, 2, 9, 0), utc(2025, 1, 4, 9, 0), BASE
        )

        assert [occ.start_at.day for occ in occurrences] == [2, 3, 4]

    def test_count_is_anchored_at_base_not_window(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY;COUNT=10", utc(2025, 1, 5), utc(2025, 1, 7, 23, 0), BASE
        )

        assert [occ.sequence for occ in occurrences] == [4, 5, 6]
        assert [occ.start_at.day for occ in occurrences] == [5, 6, 7]

    def test_window_after_count_exhausted_is_empty(self):
        assert expand_occurrences("FREQ=DAILY;COUNT=10", utc(2025, 1, 11), utc(2025, 2, 1), BASE) == []

    def test_sliding_windows_agree(self):
        rule = "FREQ=WEEKLY;INTERVAL=2;COUNT=8"
        whole = expand_occurrences(rule, utc(2025, 1, 1), utc(2025, 6, 1), BASE)
        first = expand_occurrences(rule, utc(2025, 1, 1), utc(2025, 2, 28), BASE)
        second = expand_occurrences(rule, utc(2025, 3, 1), utc(2025, 6, 1), BASE)

        assert len(whole) == 8
        assert first + second == whole

    def test_window_start_after_end_is_empty(self):
        assert expand_occurrences("FREQ=DAILY", utc(2025, 2, 1), utc(2025, 1, 1), BASE) == []

    def test_window_before_base_is_empty(self):
        assert expand_occurrences("FREQ=DAILY", utc(2024, 12, 1), utc(2024, 12, 31), BASE) == []

    def test_naive_inputs_are_utc(self):
        occurrences = expand_occurrences(
            "FREQ=DAILY;COUNT=2",
            datetime(2025, 1, 1),
            datetime(2025, 1, 10),
            datetime(2025, 1, 1, 9, 0),
        )

        assert [occ.start_at for occ in occurrences] == [BASE, utc(2025, 1, 2, 9, 0)]

    def test_sub_second_base_keeps_first_occurrence(self):
        base = utc(2025, 1, 1, 9, 0, 0, 500000)

        occurrences = expand_occurrences(
            "FREQ=DAILY;COUNT=2", base, base + timedelta(days=3), base
        )

        assert [occ.start_at for occ in occurrences] == [base, base + timedelta(days=1)]
        assert [occ.sequence for occ in occurrences] == [0, 1]

    def test_sub_second_base_against_until(self):
        base = utc(2025, 1, 1, 9, 0, 0, 500000)

        # 09:00:00.5 on Jan 2 is past an UNTIL of 09:00:00
        short = expand_occurrences(
            "FREQ=DAILY;UNTIL=20250102T090000Z", utc(2025, 1, 1), utc(2025, 1, 31), base
        )
        inclusive = expand_occurrences(
            "FREQ=DAILY;UNTIL=20250102T090001Z", utc(2025, 1, 1), utc(2025, 1, 31), base
        )

        assert [occ.start_at for occ in short] == [base]
        assert [occ.start_at for occ in inclusive] == [base, base + timedelta(days=1)]

    def test_monthly_skips_months_without_the_day(self):
        occurrences = expand_occurrences(
            "FREQ=MONTHLY", utc(2025, 1, 1), utc(2025, 6, 1), utc(2025, 1, 31, 12, 0)
        )

        assert [occ.start_at.month for occ in occurrences] == [1, 3, 5]

    def test_zoned_base_keeps_local_time_across_dst(self):
        new_york = ZoneInfo("America/New_York")
        base = datetime(2025, 3, 1, 9, 0, tzinfo=new_york)

        occurrences = expand_occurrences("FREQ=WEEKLY", utc(2025, 3, 1), utc(2025, 3, 31), base)

        local_hours = {occ.start_at.astimezone(new_york).hour for occ in occurrences}
        utc_hours = [occ.start_at.hour for occ in occurrences]
        assert local_hours == {9}
        assert utc_hours == [14, 14, 13, 13, 13]

    def test_invalid_rule_raises(self):
        with pytest.raises(InvalidRecurrenceRule):
            expand_occurrences("FREQ=WEEKLY;BYDAY=MO", utc(2025, 1, 1), utc(2025, 2, 1), BASE)


class TestNextOccurrence:
    """get_next_occurrence() and get_all_occurrences_between()."""

    def test_next_is_strictly_after(self):
        assert get_next_occurrence("FREQ=DAILY", utc(2025, 1, 2, 9, 0), BASE) == utc(2025, 1, 3, 9, 0)

    def test_next_without_base_anchors_at_instant(self):
        assert get_next_occurrence("FREQ=DAILY", BASE) == utc(2025, 1, 2, 9, 0)

    def test_none_when_count_exhausted(self):
        assert get_next_occurrence("FREQ=DAILY;COUNT=3", utc(2025, 1, 3, 9, 0), BASE) is None

    def test_none_when_until_passed(self):
        rule = "FREQ=WEEKLY;UNTIL=20250105T000000Z"

        assert get_next_occurrence(rule, utc(2025, 1, 2), BASE) is None

    def test_all_between_defaults_anchor_to_window_start(self):
        result = get_all_occurrences_between("FREQ=DAILY", utc(2025, 1, 1, 12, 0), utc(2025, 1, 3, 12, 0))

        assert result == [utc(2025, 1, 1, 12, 0), utc(2025, 1, 2, 12, 0), utc(2025, 1, 3, 12, 0)]

    def test_all_between_with_base(self):
        result = get_all_occurrences_between(
            "FREQ=WEEKLY;INTERVAL=2", utc(2025, 1, 10), utc(2025, 2, 10), BASE
        )

        assert result == [utc(2025, 1, 15, 9, 0), utc(2025, 1, 29, 9, 0)]


class TestResolveExpansionWindow:
    """RecurrenceExpander.resolve_expansion_window()."""

    def test_unbounded_past_base_looks_back_and_ahead(self, settings):
        expander = RecurrenceExpander(settings)

        start, end = expander.resolve_expansion_window("FREQ=DAILY", BASE, now=utc(2025, 6, 15))

        assert start == utc(2025, 5, 15)
        assert end == utc(2025, 12, 15)

    def test_unbounded_future_base_starts_at_base(self, settings):
        expander = RecurrenceExpander(settings)
        base = utc(2025, 7, 1, 9, 0)

        start, end = expander.resolve_expansion_window("FREQ=WEEKLY", base, now=utc(2025, 6, 15))

        assert (start, end) == (base, utc(2026, 1, 1, 9, 0))

    def test_count_bounded_ends_at_last_occurrence(self):
        start, end = RecurrenceExpander().resolve_expansion_window(
            "FREQ=DAILY;COUNT=3", BASE, now=utc(2025, 6, 15)
        )

        assert (start, end) == (BASE, utc(2025, 1, 3, 9, 0))

    def test_until_bounded_ends_at_until(self):
        start, end = RecurrenceExpander().resolve_expansion_window(
            "FREQ=DAILY;UNTIL=20250301T000000Z", BASE, now=utc(2025, 6, 15)
        )

        assert (start, end) == (BASE, utc(2025, 3, 1))

    def test_lookahead_follows_settings(self, settings):
        custom = settings.model_copy(update={"expansion_lookahead_months": 2, "expansion_lookback_months": 0})
        expander = RecurrenceExpander(custom)

        start, end = expander.resolve_expansion_window("FREQ=DAILY", BASE, now=utc(2025, 6, 15))

        assert (start, end) == (utc(2025, 6, 15), utc(2025, 8, 15))
