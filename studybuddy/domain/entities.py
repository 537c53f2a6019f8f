from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional

from .enums import Category, Priority, Rarity, TaskStatus
from .leveling import level_for_xp


@dataclass(frozen=True)
class Subtask:
    text: str
    completed: bool = False


@dataclass(frozen=True)
class TaskEntity:
    id: str
    title: str
    description: str | None
    priority: Priority
    category: Category
    status: TaskStatus
    due_date: Optional[datetime]
    tags: tuple[str, ...]
    estimated_duration: int | None
    subtasks: tuple[Subtask, ...]
    created_at: datetime
    updated_at: datetime

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def subtask_progress(self) -> tuple[int, int]:
        done = sum(1 for subtask in self.subtasks if subtask.completed)
        return done, len(self.subtasks)


@dataclass(frozen=True)
class TaskStats:
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    overdue: int = 0
    due_today: int = 0

    @property
    def completion_rate(self) -> int:
        if not self.total:
            return 0
        return round(self.completed / self.total * 100)

    @property
    def productivity_score(self) -> int:
        if not self.total:
            return 0
        return round((self.completed + self.in_progress * 0.5) / self.total * 100)


@dataclass
class UserProgress:
    xp: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_tasks_completed: int = 0
    perfect_days: int = 0
    unlocked_achievements: set[str] = field(default_factory=set)
    study_time_minutes: int = 0
    favorite_category: Category = Category.ACADEMIC
    last_completion_date: Optional[date] = None
    last_perfect_day: Optional[date] = None

    @property
    def level(self) -> int:
        return level_for_xp(self.xp)


@dataclass(frozen=True)
class Reward:
    xp: int
    title: str | None = None
    badge: str | None = None


AchievementRule = Callable[[TaskStats, UserProgress], bool]


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    icon: str
    rarity: Rarity
    reward: Reward
    rule: AchievementRule = field(compare=False, repr=False)

    def is_met(self, stats: TaskStats, progress: UserProgress) -> bool:
        return bool(self.rule(stats, progress))
