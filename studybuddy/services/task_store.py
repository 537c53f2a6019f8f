from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable

from studybuddy.domain.dates import DueBucket, classify_due, day_bounds, normalize_due
from studybuddy.domain.entities import Subtask, TaskEntity, TaskStats
from studybuddy.domain.enums import Category, Priority, TaskStatus
from studybuddy.domain.errors import InvalidTask, NotFound
from studybuddy.domain.filters import TaskFilters
from studybuddy.infra.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({
    "title",
    "description",
    "priority",
    "category",
    "status",
    "due_date",
    "tags",
    "estimated_duration",
    "subtasks",
})


def _new_id() -> str:
    return uuid.uuid4().hex


class TaskStore:
    """In-memory task collection with filtering and due-date statistics.

    Iteration order is insertion order until a caller submits a new order
    through :meth:`reorder`. Every read observes all earlier mutations.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        *,
        upcoming_days: int = 7,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._clock = clock or SystemClock()
        self._upcoming_days = upcoming_days
        self._id_factory = id_factory
        self._tasks: dict[str, TaskEntity] = {}
        self._issued_ids: set[str] = set()
        self._reopen_status: dict[str, TaskStatus] = {}
        self._filters = TaskFilters()
        self._lock = threading.RLock()

    # ---- reads ----

    def list_tasks(self) -> list[TaskEntity]:
        with self._lock:
            return list(self._tasks.values())

    def get_task(self, task_id: str) -> TaskEntity:
        with self._lock:
            task = self._tasks.get(task_id)
        if task is None:
            raise NotFound(f"Task {task_id!r} does not exist")
        return task

    def __len__(self) -> int:
        return len(self._tasks)

    # ---- mutations ----

    def add(self, data: dict) -> TaskEntity:
        normalized = self._normalize_data(data)
        if "title" not in normalized:
            raise InvalidTask("Task title must not be empty")
        with self._lock:
            now = self._clock.now()
            task = TaskEntity(
                id=self._issue_id(),
                title=normalized["title"],
                description=normalized.get("description"),
                priority=normalized.get("priority", Priority.MEDIUM),
                category=normalized.get("category", Category.ACADEMIC),
                status=normalized.get("status", TaskStatus.PENDING),
                due_date=normalized.get("due_date"),
                tags=normalized.get("tags", ()),
                estimated_duration=normalized.get("estimated_duration"),
                subtasks=normalized.get("subtasks", ()),
                created_at=now,
                updated_at=now,
            )
            self._tasks[task.id] = task
        logger.debug("Task added id=%s title=%r", task.id, task.title)
        return task

    def update(self, task_id: str, data: dict) -> TaskEntity:
        normalized = self._normalize_data(data)
        with self._lock:
            task = self.get_task(task_id)
            new_status = normalized.get("status", task.status)
            if new_status == TaskStatus.COMPLETED and not task.is_completed:
                self._reopen_status[task_id] = task.status
            elif new_status != TaskStatus.COMPLETED:
                self._reopen_status.pop(task_id, None)
            updated = replace(task, **normalized, updated_at=self._touch(task))
            self._tasks[task_id] = updated
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(normalized))
        return updated

    def delete(self, task_id: str) -> None:
        """Remove a task for good. Unknown ids raise :class:`NotFound`."""
        with self._lock:
            if task_id not in self._tasks:
                raise NotFound(f"Task {task_id!r} does not exist")
            del self._tasks[task_id]
            self._reopen_status.pop(task_id, None)
        logger.debug("Task deleted id=%s", task_id)

    def toggle_status(self, task_id: str) -> TaskEntity:
        """Complete an open task, or reopen a completed one in its last open status."""
        with self._lock:
            task = self.get_task(task_id)
            if task.is_completed:
                status = self._reopen_status.pop(task_id, TaskStatus.PENDING)
            else:
                self._reopen_status[task_id] = task.status
                status = TaskStatus.COMPLETED
            updated = replace(task, status=status, updated_at=self._touch(task))
            self._tasks[task_id] = updated
        return updated

    def add_subtask(self, task_id: str, text: str) -> TaskEntity:
        text = (text or "").strip()
        if not text:
            raise InvalidTask("Subtask text must not be empty")
        with self._lock:
            task = self.get_task(task_id)
            updated = replace(
                task,
                subtasks=(*task.subtasks, Subtask(text=text)),
                updated_at=self._touch(task),
            )
            self._tasks[task_id] = updated
        return updated

    def toggle_subtask(self, task_id: str, index: int) -> TaskEntity:
        with self._lock:
            task = self.get_task(task_id)
            if not 0 <= index < len(task.subtasks):
                raise NotFound(f"Task {task_id!r} has no subtask #{index}")
            subtasks = list(task.subtasks)
            subtasks[index] = replace(subtasks[index], completed=not subtasks[index].completed)
            updated = replace(task, subtasks=tuple(subtasks), updated_at=self._touch(task))
            self._tasks[task_id] = updated
        return updated

    def reorder(self, task_ids: list[str]) -> None:
        """Adopt ``task_ids`` as the iteration order; ``updated_at`` is left alone.

        Tasks missing from ``task_ids`` keep their relative order after the
        listed ones.
        """
        with self._lock:
            unknown = [task_id for task_id in task_ids if task_id not in self._tasks]
            if unknown:
                raise NotFound(f"Cannot reorder unknown tasks: {', '.join(unknown)}")
            ordered = list(dict.fromkeys(task_ids))
            listed = set(ordered)
            rest = [task_id for task_id in self._tasks if task_id not in listed]
            self._tasks = {task_id: self._tasks[task_id] for task_id in [*ordered, *rest]}

    def restore(self, tasks: Iterable[TaskEntity]) -> None:
        """Replace the collection with previously persisted tasks."""
        with self._lock:
            self._tasks = {task.id: task for task in tasks}
            self._issued_ids.update(self._tasks)
            self._reopen_status.clear()

    # ---- filtering ----

    @property
    def filters(self) -> TaskFilters:
        return self._filters

    def set_filter(self, patch: dict[str, Any] | None = None, **changes: Any) -> TaskFilters:
        merged = {**(patch or {}), **changes}
        with self._lock:
            try:
                self._filters = self._filters.merge(merged)
            except (KeyError, ValueError) as exc:
                raise InvalidTask(f"Invalid filter: {exc}") from exc
            return self._filters

    def clear_filter(self) -> None:
        with self._lock:
            self._filters = TaskFilters()

    def filtered_tasks(self) -> list[TaskEntity]:
        with self._lock:
            filters = self._filters
            return [task for task in self._tasks.values() if filters.matches(task)]

    # ---- statistics ----

    def stats(self, now: datetime | None = None) -> TaskStats:
        now = now or self._clock.now()
        with self._lock:
            tasks = list(self._tasks.values())
        statuses = Counter(task.status for task in tasks)
        buckets = Counter(classify_due(task, now, self._upcoming_days) for task in tasks)
        return TaskStats(
            total=len(tasks),
            completed=statuses[TaskStatus.COMPLETED],
            in_progress=statuses[TaskStatus.IN_PROGRESS],
            pending=statuses[TaskStatus.PENDING],
            overdue=buckets[DueBucket.OVERDUE],
            due_today=buckets[DueBucket.DUE_TODAY],
        )

    def tasks_due_today(self, now: datetime | None = None) -> list[TaskEntity]:
        return self._bucket(DueBucket.DUE_TODAY, now, self._upcoming_days)

    def overdue_tasks(self, now: datetime | None = None) -> list[TaskEntity]:
        return self._bucket(DueBucket.OVERDUE, now, self._upcoming_days)

    def upcoming_tasks(
        self,
        within_days: int | None = None,
        now: datetime | None = None,
    ) -> list[TaskEntity]:
        days = self._upcoming_days if within_days is None else within_days
        return self._bucket(DueBucket.UPCOMING, now, days)

    def tasks_due_on(self, day: date) -> list[TaskEntity]:
        """Every task due on ``day``, completed or not."""
        start, end = day_bounds(datetime.combine(day, datetime.min.time()))
        with self._lock:
            return [
                task
                for task in self._tasks.values()
                if task.due_date is not None and start <= task.due_date < end
            ]

    def completed_by_category(self) -> dict[Category, int]:
        with self._lock:
            counts = Counter(task.category for task in self._tasks.values() if task.is_completed)
        return {category: counts[category] for category in Category}

    # ---- helpers ----

    def _bucket(self, bucket: DueBucket, now: datetime | None, days: int) -> list[TaskEntity]:
        now = now or self._clock.now()
        with self._lock:
            return [
                task
                for task in self._tasks.values()
                if classify_due(task, now, days) == bucket
            ]

    def _issue_id(self) -> str:
        task_id = self._id_factory()
        while task_id in self._issued_ids:
            task_id = self._id_factory()
        self._issued_ids.add(task_id)
        return task_id

    def _touch(self, task: TaskEntity) -> datetime:
        return max(self._clock.now(), task.created_at)

    def _normalize_data(self, data: dict) -> dict:
        unknown = set(data) - EDITABLE_FIELDS
        if unknown:
            raise InvalidTask(f"Unsupported task fields: {', '.join(sorted(unknown))}")

        normalized: dict[str, Any] = {}
        try:
            if "title" in data:
                title = (data["title"] or "").strip()
                if not title:
                    raise InvalidTask("Task title must not be empty")
                normalized["title"] = title
            if "description" in data:
                description = (data["description"] or "").strip()
                normalized["description"] = description or None
            if "priority" in data:
                normalized["priority"] = Priority(data["priority"])
            if "category" in data:
                normalized["category"] = Category(data["category"])
            if "status" in data:
                normalized["status"] = TaskStatus(data["status"])
            if "due_date" in data:
                normalized["due_date"] = normalize_due(data["due_date"])
            if "tags" in data:
                normalized["tags"] = _normalize_tags(data["tags"])
            if "estimated_duration" in data:
                normalized["estimated_duration"] = _normalize_duration(data["estimated_duration"])
            if "subtasks" in data:
                normalized["subtasks"] = _normalize_subtasks(data["subtasks"])
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            if isinstance(exc, InvalidTask):
                raise
            raise InvalidTask(str(exc)) from exc
        return normalized


def _normalize_tags(value: str | Iterable[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    tags = (str(tag).strip().lower() for tag in value)
    return tuple(dict.fromkeys(tag for tag in tags if tag))


def _normalize_duration(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool) or int(value) != value:
        raise InvalidTask("Estimated duration must be a whole number of minutes")
    minutes = int(value)
    if minutes <= 0:
        raise InvalidTask("Estimated duration must be positive")
    return minutes


def _normalize_subtasks(value: Iterable[Any] | None) -> tuple[Subtask, ...]:
    subtasks = []
    for item in value or ():
        if isinstance(item, Subtask):
            subtask = item
        elif isinstance(item, str):
            subtask = Subtask(text=item)
        else:
            subtask = Subtask(text=item["text"], completed=bool(item.get("completed", False)))
        text = subtask.text.strip()
        if not text:
            raise InvalidTask("Subtask text must not be empty")
        subtasks.append(replace(subtask, text=text))
    return tuple(subtasks)
