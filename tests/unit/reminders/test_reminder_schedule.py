"""Tests for reminder calendar placement and notification planning."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from budget_recurrence.reminders import (
    ReminderScheduler,
    build_reminder_schedule,
    generate_due_dates,
    plan_notifications,
)

pytestmark = pytest.mark.unit

UTC = timezone.utc


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


class TestGenerateDueDates:
    """generate_due_dates() over a calendar view."""

    def test_monthly_in_quarter(self, make_reminder, sao_paulo):
        reminder = make_reminder("monthly", 15, due_time="09:00")

        result = generate_due_dates(reminder, utc(2026, 1, 1), utc(2026, 3, 31), sao_paulo)

        assert result == [utc(2026, 1, 15, 12, 0), utc(2026, 2, 15, 12, 0), utc(2026, 3, 15, 12, 0)]

    def test_weekly_in_month(self, make_reminder):
        reminder = make_reminder("weekly", 3)

        result = generate_due_dates(reminder, utc(2026, 1, 1), utc(2026, 1, 31, 23, 59, 59), "UTC")

        assert [due.day for due in result] == [7, 14, 21, 28]

    def test_due_at_view_start_is_included(self, make_reminder, sao_paulo):
        reminder = make_reminder("monthly", 15, due_time="09:00")

        result = generate_due_dates(reminder, utc(2026, 1, 15, 12, 0), utc(2026, 1, 31), sao_paulo)

        assert result == [utc(2026, 1, 15, 12, 0)]

    def test_due_at_view_end_is_included(self, make_reminder, sao_paulo):
        reminder = make_reminder("monthly", 15, due_time="09:00")

        result = generate_due_dates(reminder, utc(2026, 1, 1), utc(2026, 1, 15, 12, 0), sao_paulo)

        assert result == [utc(2026, 1, 15, 12, 0)]

    def test_once_inside_and_outside_view(self, make_reminder):
        reminder = make_reminder("once", 20, "2026-02")

        assert generate_due_dates(reminder, utc(2026, 2, 1), utc(2026, 2, 28), "UTC") == [utc(2026, 2, 20)]
        assert generate_due_dates(reminder, utc(2026, 3, 1), utc(2026, 3, 31), "UTC") == []

    def test_quarterly_in_year(self, make_reminder):
        reminder = make_reminder("quarterly", 31, "2026-01")

        result = generate_due_dates(reminder, utc(2026, 1, 1), utc(2026, 12, 31, 23, 59), "UTC")

        assert [(due.month, due.day) for due in result] == [(1, 31), (5, 1), (8, 1), (11, 1)]

    def test_empty_view(self, make_reminder):
        reminder = make_reminder("monthly", 15)

        assert generate_due_dates(reminder, utc(2026, 2, 1), utc(2026, 1, 1), "UTC") == []

    def test_truncates_at_max_iterations(self, make_reminder, settings, caplog):
        scheduler = ReminderScheduler(settings.model_copy(update={"schedule_max_iterations": 3}))
        reminder = make_reminder("weekly", 1)

        with caplog.at_level(logging.WARNING, logger="budget_recurrence.reminders.schedule"):
            result = scheduler.generate_due_dates(reminder, utc(2026, 1, 1), utc(2026, 12, 31), "UTC")

        assert len(result) == 3
        assert "truncating" in caplog.text


class TestBuildReminderSchedule:
    """build_reminder_schedule() entries."""

    def test_all_day_and_timed_entries(self, make_reminder, sao_paulo):
        reminders = [
            make_reminder("monthly", 10, id="rent", name="Rent", amount_cents=150000),
            make_reminder("monthly", 20, due_time="18:00", id="power", name="Power"),
        ]

        entries = build_reminder_schedule(reminders, utc(2026, 1, 1), utc(2026, 2, 28), sao_paulo)

        rent = [entry for entry in entries if entry.reminder_id == "rent"]
        power = [entry for entry in entries if entry.reminder_id == "power"]
        assert len(rent) == 2
        assert len(power) == 2

        first = rent[0]
        assert first.all_day is True
        assert first.title == "Rent"
        assert first.amount_cents == 150000
        assert first.start == utc(2026, 1, 10, 3, 0)
        assert first.end == utc(2026, 1, 11, 2, 59, 59)

        timed = power[0]
        assert timed.all_day is False
        assert timed.start == utc(2026, 1, 20, 21, 0)
        assert timed.end - timed.start == timedelta(hours=1)

    def test_entry_ids(self, make_reminder):
        reminder = make_reminder("monthly", 10, id="rent")

        entries = build_reminder_schedule([reminder], utc(2026, 1, 1), utc(2026, 3, 31), "UTC")

        second_due_ms = int(utc(2026, 2, 10).timestamp() * 1000)
        assert [entry.id for entry in entries] == [
            "bill-reminder-rent",
            f"bill-reminder-rent-occ-{second_due_ms}",
            f"bill-reminder-rent-occ-{int(utc(2026, 3, 10).timestamp() * 1000)}",
        ]

    def test_bad_reminders_are_skipped(self, make_reminder, caplog):
        reminders = [
            make_reminder("fortnightly", 10, id="broken"),
            {"id": "incomplete", "recurrenceType": "monthly"},
            make_reminder("monthly", 10, id="rent"),
        ]

        with caplog.at_level(logging.ERROR, logger="budget_recurrence.reminders.schedule"):
            entries = build_reminder_schedule(reminders, utc(2026, 1, 1), utc(2026, 1, 31), "UTC")

        assert [entry.reminder_id for entry in entries] == ["rent"]
        assert "'broken'" in caplog.text
        assert "'incomplete'" in caplog.text

    def test_accepts_mappings(self):
        rows = [{"id": 3, "name": "Gym", "recurrenceType": "weekly", "dueDay": 1, "startMonth": "2026-01"}]

        entries = build_reminder_schedule(rows, utc(2026, 1, 1), utc(2026, 1, 14), "UTC")

        assert [entry.start.day for entry in entries] == [5, 12]
        assert entries[0].id == "bill-reminder-3"


class TestPlanNotifications:
    """plan_notifications() for the next due date."""

    def test_all_offsets_when_due_in_five_days(self, make_reminder, sao_paulo):
        reminder = make_reminder("monthly", 15, due_time="09:00")

        plans = plan_notifications(reminder, now=utc(2026, 1, 10, 12, 0), time_zone=sao_paulo)

        due = utc(2026, 1, 15, 12, 0)
        assert [(plan.offset_minutes, plan.scheduled_at) for plan in plans] == [
            (-2880, utc(2026, 1, 13, 12, 0)),
            (-1440, utc(2026, 1, 14, 12, 0)),
            (0, due),
        ]
        assert all(plan.due_at == due for plan in plans)

    def test_passed_offsets_are_dropped(self, make_reminder, sao_paulo):
        reminder = make_reminder("monthly", 15, due_time="09:00")

        plans = plan_notifications(reminder, now=utc(2026, 1, 14, 13, 0), time_zone=sao_paulo)

        assert [plan.offset_minutes for plan in plans] == [0]

    def test_disabled_flags_are_skipped(self, make_reminder, sao_paulo):
        reminder = make_reminder(
            "monthly", 15, due_time="09:00", notify_two_days_before=False, notify_on_due_day=False
        )

        plans = plan_notifications(reminder, now=utc(2026, 1, 10, 12, 0), time_zone=sao_paulo)

        assert [plan.offset_minutes for plan in plans] == [-1440]

    def test_nothing_beyond_horizon(self, make_reminder, sao_paulo):
        reminder = make_reminder("monthly", 15, due_time="09:00")

        assert plan_notifications(reminder, now=utc(2026, 1, 1, 12, 0), time_zone=sao_paulo) == []

    def test_custom_horizon(self, make_reminder, sao_paulo):
        reminder = make_reminder("monthly", 15, due_time="09:00")

        plans = plan_notifications(
            reminder, now=utc(2026, 1, 1, 12, 0), time_zone=sao_paulo, horizon=timedelta(days=30)
        )

        assert len(plans) == 3

    def test_inactive_reminder_has_no_notifications(self, make_reminder, sao_paulo):
        reminder = make_reminder("monthly", 15, due_time="09:00", status="paused")

        assert plan_notifications(reminder, now=utc(2026, 1, 10, 12, 0), time_zone=sao_paulo) == []

    def test_day_offsets_follow_local_calendar_across_dst(self, make_reminder):
        reminder = make_reminder("monthly", 10, due_time="09:00")

        plans = plan_notifications(reminder, now=utc(2025, 3, 6, 12, 0), time_zone="America/New_York")

        # Due Mar 10 09:00 EDT; two days earlier is Mar 8 09:00 EST
        assert plans[0].scheduled_at == utc(2025, 3, 8, 14, 0)
        assert plans[-1].scheduled_at == utc(2025, 3, 10, 13, 0)
