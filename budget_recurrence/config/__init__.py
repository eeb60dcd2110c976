"""Configuration management for budget_recurrence."""

from .settings import RecurrenceSettings, load_settings

__all__ = ["RecurrenceSettings", "load_settings"]
