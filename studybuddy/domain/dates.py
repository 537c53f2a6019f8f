from __future__ import annotations

from datetime import date, datetime, time, timedelta
from enum import StrEnum

from .entities import TaskEntity


class DueBucket(StrEnum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    UPCOMING = "upcoming"
    LATER = "later"


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = start_of_day(now)
    return start, start + timedelta(days=1)


def normalize_due(value: date | datetime | None) -> datetime | None:
    """Coerce a due value to a naive local datetime; bare dates mean midnight."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


def classify_due(task: TaskEntity, now: datetime, upcoming_days: int = 7) -> DueBucket | None:
    """Place an open task with a due date into exactly one bucket relative to ``now``.

    Completed tasks and tasks without a due date have no bucket.
    """
    if task.is_completed or task.due_date is None:
        return None
    today, tomorrow = day_bounds(now)
    due = task.due_date
    if due < today:
        return DueBucket.OVERDUE
    if due < tomorrow:
        return DueBucket.DUE_TODAY
    if due < tomorrow + timedelta(days=max(upcoming_days, 0)):
        return DueBucket.UPCOMING
    return DueBucket.LATER
