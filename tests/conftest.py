"""Shared fixtures for budget_recurrence tests."""

import logging
import os
from collections.abc import Generator
from typing import Any, Callable, Optional

import pytest
from dateutil import tz

from budget_recurrence.config import RecurrenceSettings
from budget_recurrence.reminders import BillReminder
from budget_recurrence.utils.logging import ENGINE_LOGGERS


def pytest_configure(config: Any) -> None:
    """Register test markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep BUDGET_RECURRENCE_* variables from leaking into settings between tests."""
    for key in list(os.environ):
        if key.upper().startswith("BUDGET_RECURRENCE_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def reset_logging() -> Generator[None, Any, None]:
    """Restore root and engine logger levels changed by configure_logging()."""
    names = ("",) + ENGINE_LOGGERS
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


@pytest.fixture
def settings() -> RecurrenceSettings:
    """Deterministic settings independent of environment and .env files."""
    return RecurrenceSettings(_env_file=None)


@pytest.fixture
def sao_paulo() -> str:
    """Zone used by most time-zone scenarios (UTC-3, no DST since 2019)."""
    return "America/Sao_Paulo"


@pytest.fixture
def local_tz() -> Any:
    """The host's local zone, for calculations made without a time zone."""
    return tz.tzlocal()


@pytest.fixture
def make_reminder() -> Callable[..., BillReminder]:
    """Factory for minimal BillReminder objects."""

    def _make(
        recurrence_type: str,
        due_day: int,
        start_month: str = "2026-01",
        due_time: Optional[str] = None,
        **extra: Any,
    ) -> BillReminder:
        return BillReminder(
            id=extra.pop("id", "test-id"),
            name=extra.pop("name", "Test Reminder"),
            recurrence_type=recurrence_type,
            due_day=due_day,
            start_month=start_month,
            due_time=due_time,
            **extra,
        )

    return _make
