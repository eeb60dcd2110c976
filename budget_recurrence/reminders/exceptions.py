"""Bill reminder exceptions for error handling."""

from typing import Any, Optional


class ReminderError(Exception):
    """Base exception for bill reminder calculations."""

    def __init__(self, message: str, reminder_id: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.reminder_id = reminder_id


class UnsupportedRecurrenceType(ReminderError):
    """Exception raised when a reminder carries an unknown recurrence type.

    This indicates bad data rather than bad user input: the form layer is
    expected to reject unknown types before they are stored.
    """

    def __init__(self, recurrence_type: Any, reminder_id: Optional[Any] = None):
        super().__init__(f"Unsupported recurrence type: {recurrence_type}", reminder_id)
        self.recurrence_type = recurrence_type
