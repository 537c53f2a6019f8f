from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any

from studybuddy.domain.entities import Subtask, TaskEntity, UserProgress
from studybuddy.domain.enums import Category, Priority, TaskStatus
from studybuddy.domain.errors import PersistenceCorrupt

SNAPSHOT_VERSION = 1

_COUNTERS = (
    "xp",
    "current_streak",
    "longest_streak",
    "total_tasks_completed",
    "perfect_days",
    "study_time_minutes",
)


def _load_object(payload: str | bytes) -> dict[str, Any]:
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise PersistenceCorrupt(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise PersistenceCorrupt("Snapshot must be a JSON object")
    return data


def _date_or_none(value: Any) -> date | None:
    return date.fromisoformat(value) if value else None


def _datetime_or_none(value: Any) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


def encode_progress(progress: UserProgress) -> str:
    return json.dumps({
        "version": SNAPSHOT_VERSION,
        "level": progress.level,
        "xp": progress.xp,
        "current_streak": progress.current_streak,
        "longest_streak": progress.longest_streak,
        "total_tasks_completed": progress.total_tasks_completed,
        "perfect_days": progress.perfect_days,
        "unlocked_achievements": sorted(progress.unlocked_achievements),
        "study_time_minutes": progress.study_time_minutes,
        "favorite_category": progress.favorite_category.value,
        "last_completion_date": _iso(progress.last_completion_date),
        "last_perfect_day": _iso(progress.last_perfect_day),
    })


def decode_progress(payload: str | bytes) -> UserProgress:
    """Rebuild UserProgress; the stored level is ignored and recomputed from xp."""
    data = _load_object(payload)
    progress = UserProgress()
    try:
        for name in _COUNTERS:
            if name not in data:
                continue
            value = data[name]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise PersistenceCorrupt(f"Field {name} must be a non-negative integer")
            setattr(progress, name, value)
        unlocked = data.get("unlocked_achievements", [])
        if not isinstance(unlocked, list) or not all(isinstance(item, str) for item in unlocked):
            raise PersistenceCorrupt("unlocked_achievements must be a list of ids")
        progress.unlocked_achievements = set(unlocked)
        progress.favorite_category = Category(data.get("favorite_category", Category.ACADEMIC))
        progress.last_completion_date = _date_or_none(data.get("last_completion_date"))
        progress.last_perfect_day = _date_or_none(data.get("last_perfect_day"))
    except (TypeError, ValueError) as exc:
        raise PersistenceCorrupt(f"Invalid progress snapshot: {exc}") from exc
    return progress


def encode_unlocks(unlocked_at: dict[str, datetime]) -> str:
    return json.dumps({
        "version": SNAPSHOT_VERSION,
        "unlocked": {key: value.isoformat() for key, value in unlocked_at.items()},
    })


def decode_unlocks(payload: str | bytes) -> dict[str, datetime]:
    data = _load_object(payload)
    unlocked = data.get("unlocked", {})
    if not isinstance(unlocked, dict):
        raise PersistenceCorrupt("unlocked must be an object")
    try:
        return {str(key): datetime.fromisoformat(value) for key, value in unlocked.items()}
    except (TypeError, ValueError) as exc:
        raise PersistenceCorrupt(f"Invalid unlock timestamp: {exc}") from exc


def encode_tasks(tasks: list[TaskEntity]) -> str:
    return json.dumps({
        "version": SNAPSHOT_VERSION,
        "tasks": [
            {
                "id": task.id,
                "title": task.title,
                "description": task.description,
                "priority": task.priority.value,
                "category": task.category.value,
                "status": task.status.value,
                "due_date": _iso(task.due_date),
                "tags": list(task.tags),
                "estimated_duration": task.estimated_duration,
                "subtasks": [
                    {"text": subtask.text, "completed": subtask.completed}
                    for subtask in task.subtasks
                ],
                "created_at": task.created_at.isoformat(),
                "updated_at": task.updated_at.isoformat(),
            }
            for task in tasks
        ],
    })


def decode_tasks(payload: str | bytes) -> list[TaskEntity]:
    """Tasks come back in creation order."""
    data = _load_object(payload)
    rows = data.get("tasks", [])
    if not isinstance(rows, list):
        raise PersistenceCorrupt("tasks must be a list")
    try:
        tasks = [
            TaskEntity(
                id=str(row["id"]),
                title=str(row["title"]),
                description=row.get("description"),
                priority=Priority(row["priority"]),
                category=Category(row["category"]),
                status=TaskStatus(row["status"]),
                due_date=_datetime_or_none(row.get("due_date")),
                tags=tuple(row.get("tags", ())),
                estimated_duration=row.get("estimated_duration"),
                subtasks=tuple(
                    Subtask(text=item["text"], completed=bool(item["completed"]))
                    for item in row.get("subtasks", ())
                ),
                created_at=datetime.fromisoformat(row["created_at"]),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
            for row in rows
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise PersistenceCorrupt(f"Invalid task snapshot: {exc}") from exc
    return sorted(tasks, key=lambda task: task.created_at)
