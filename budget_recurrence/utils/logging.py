"""
Central logging configuration for budget_recurrence.

Keeps engine loggers quiet by default (INFO) while letting operators turn on
per-call DEBUG detail for recurrence expansion and due-date calculation.
"""

import logging
import os
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"

ENGINE_LOGGERS = (
    "budget_recurrence",
    "budget_recurrence.__main__",
    "budget_recurrence.recurrence.expander",
    "budget_recurrence.recurrence.task_schedule",
    "budget_recurrence.reminders.due_date",
    "budget_recurrence.reminders.schedule",
    "budget_recurrence.timezone.date_parts",
    "budget_recurrence.config.settings",
)


def _env_debug() -> bool:
    return os.getenv("BUDGET_RECURRENCE_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")


def configure_logging(
    level_name: Optional[str] = None,
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
) -> int:
    """
    Configure logging levels for budget_recurrence.

    Args:
        level_name: Root log level name (DEBUG, INFO, WARNING, ERROR); INFO when unknown
        debug_mode: Whether to enable debug logging for engine modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        BUDGET_RECURRENCE_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        BUDGET_RECURRENCE_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        The root level that was applied.
    """
    if force_debug is not None:
        final_debug = force_debug
    else:
        final_debug = debug_mode or _env_debug()

    root_level = getattr(logging, str(level_name or "INFO").upper(), logging.INFO)
    if not isinstance(root_level, int):
        root_level = logging.INFO
    if final_debug:
        root_level = logging.DEBUG

    env_log_level = os.getenv("BUDGET_RECURRENCE_LOG_LEVEL", "").upper()
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Only add a handler if none exist so host applications keep their own setup
    if not root_logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT))
        root_logger.addHandler(handler)

    engine_level = logging.DEBUG if final_debug else max(root_level, logging.INFO)
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(engine_level)

    root_logger.debug(
        "Logging initialized at level %s (engine debug=%s)",
        logging.getLevelName(root_level),
        final_debug,
    )
    return root_level
