"""Utility helpers for budget_recurrence."""

from .logging import configure_logging

__all__ = ["configure_logging"]
