from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

from .entities import TaskEntity
from .enums import Category, Priority, TaskStatus


@dataclass(frozen=True)
class TaskFilters:
    status: TaskStatus | None = None
    category: Category | None = None
    priority: Priority | None = None
    search_query: str | None = None

    def merge(self, patch: dict[str, Any]) -> TaskFilters:
        """Return a copy with ``patch`` applied; ``None`` or "all" drops a constraint."""
        known = {f.name for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in patch.items():
            if key not in known:
                raise KeyError(f"Unknown filter key: {key}")
            changes[key] = _coerce(key, value)
        return replace(self, **changes)

    @property
    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.category is None
            and self.priority is None
            and not self.search_query
        )

    def matches(self, task: TaskEntity) -> bool:
        if self.status is not None and task.status != self.status:
            return False
        if self.category is not None and task.category != self.category:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        if self.search_query:
            needle = self.search_query.lower()
            haystack = [task.title, task.description or "", *task.tags]
            if not any(needle in value.lower() for value in haystack):
                return False
        return True


def _coerce(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key == "search_query":
        text = str(value).strip()
        return text or None
    if value == "all":
        return None
    if key == "status":
        return TaskStatus(value)
    if key == "category":
        return Category(value)
    if key == "priority":
        return Priority(value)
