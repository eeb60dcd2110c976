"""Calendar placement for recurring tasks."""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any, Optional, Union

from ..timezone import ensure_aware, resolve_zone
from .exceptions import InvalidRecurrenceRule
from .expander import RecurrenceExpander
from .models import RecurringTask, TaskScheduleEntry

logger = logging.getLogger(__name__)

TaskLike = Union[RecurringTask, Mapping[str, Any]]


def as_recurring_task(task: TaskLike) -> RecurringTask:
    """Coerce a task row (mapping with snake_case or camelCase keys) to a RecurringTask."""
    if isinstance(task, RecurringTask):
        return task
    return RecurringTask.model_validate(task)


def resolve_task_range(task: RecurringTask) -> tuple[datetime, datetime]:
    """Return the (start, end) a task occupies on the calendar.

    A task with both ``start_at`` and ``duration_minutes`` spans that block;
    any other task is a point at its due instant.
    """
    if task.start_at is not None and task.duration_minutes:
        start = ensure_aware(task.start_at)
        return start, start + timedelta(minutes=task.duration_minutes)

    due = ensure_aware(task.due_at)
    return due, due


class TaskScheduler:
    """Expands recurring tasks into calendar entries.

    A task without a rule, with a rule that does not parse, or whose rule
    yields nothing in its expansion window is shown once at its base range.
    """

    def __init__(
        self,
        settings: Optional[Any] = None,
        expander: Optional[RecurrenceExpander] = None,
    ):
        self.settings = settings
        self.expander = expander or RecurrenceExpander(settings)
        self.default_time_zone: Optional[str] = getattr(settings, "default_time_zone", None)

    def build_schedule(
        self,
        tasks: Iterable[TaskLike],
        time_zone: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[TaskScheduleEntry]:
        """Build calendar entries for tasks, with starts and ends in ``time_zone``.

        A row that is not a valid task is logged and skipped.
        """
        zone = resolve_zone(time_zone or self.default_time_zone)
        entries: list[TaskScheduleEntry] = []

        for raw in tasks:
            try:
                task = as_recurring_task(raw)
            except ValueError:
                task_id = raw.get("id") if isinstance(raw, Mapping) else None
                logger.exception("Failed to schedule task %r", task_id)
                continue
            entries.extend(self._expand_task(task, zone, now))

        logger.debug("Built task schedule: entries=%d", len(entries))
        return entries

    def _expand_task(
        self, task: RecurringTask, zone: Any, now: Optional[datetime]
    ) -> list[TaskScheduleEntry]:
        base_start, base_end = resolve_task_range(task)
        base_entry = self._build_entry(task, f"task-{task.id}", base_start, base_end, zone)
        if not task.recurrence_rule:
            return [base_entry]

        try:
            window_start, window_end = self.expander.resolve_expansion_window(
                task.recurrence_rule, base_start, now
            )
            occurrences = self.expander.expand_occurrences(
                task.recurrence_rule,
                window_start,
                window_end,
                base_start,
                "task",
                base_end,
            )
        except InvalidRecurrenceRule as e:
            logger.warning(
                "Invalid recurrence rule for task %s, showing base occurrence: %s",
                task.id,
                e.message,
            )
            return [base_entry]

        if not occurrences:
            return [base_entry]

        return [
            self._build_entry(
                task,
                f"task-{task.id}-occ-{int(occ.start_at.timestamp() * 1000)}",
                occ.start_at,
                occ.end_at if occ.end_at is not None else occ.start_at,
                zone,
            )
            for occ in occurrences
        ]

    @staticmethod
    def _build_entry(
        task: RecurringTask, entry_id: str, start: datetime, end: datetime, zone: Any
    ) -> TaskScheduleEntry:
        return TaskScheduleEntry(
            id=entry_id,
            task_id=task.id,
            title=task.title,
            start=start.astimezone(zone),
            end=end.astimezone(zone),
            description=task.description,
            location=task.location,
            priority=task.priority,
            status=task.status,
        )


_task_scheduler = TaskScheduler()


def build_task_schedule(
    tasks: Iterable[TaskLike],
    time_zone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[TaskScheduleEntry]:
    """Calendar entries for recurring tasks (convenience function)."""
    return _task_scheduler.build_schedule(tasks, time_zone, now)
