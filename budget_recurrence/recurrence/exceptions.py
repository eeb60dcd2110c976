"""Recurrence-specific exceptions for error handling."""

from typing import Optional


class RecurrenceError(Exception):
    """Base exception for recurrence-related errors."""

    def __init__(self, message: str, rule: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.rule = rule


class InvalidRecurrenceRule(RecurrenceError):
    """Exception raised when a rule string is malformed or uses an unsupported construct."""
