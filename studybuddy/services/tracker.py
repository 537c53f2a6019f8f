from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from studybuddy.domain.entities import Achievement, TaskEntity, TaskStats, UserProgress
from studybuddy.domain.enums import Category, TaskStatus, TimerMode
from studybuddy.domain.errors import NotFound, PersistenceCorrupt
from studybuddy.domain.motivation import motivational_message
from studybuddy.domain.templates import TEMPLATES_BY_ID
from studybuddy.infra.clock import Clock, SystemClock
from studybuddy.infra.codec import decode_tasks, encode_tasks
from studybuddy.infra.repository import TASKS_SLOT, SnapshotRepository

from .focus_timer import FocusTimer, PhaseCompletion
from .progress_engine import TASK_CREATED_XP, ProgressEngine, completion_xp
from .task_store import TaskStore

logger = logging.getLogger(__name__)

AchievementSink = Callable[[Achievement], object]


@dataclass(frozen=True)
class ActionResult:
    task: TaskEntity | None
    stats: TaskStats
    xp_awarded: int = 0
    unlocked: tuple[Achievement, ...] = field(default_factory=tuple)


class StudyTracker:
    """Runs every task-affecting action as one synchronous transaction.

    mutation -> statistics -> achievement evaluation -> unlock -> save ->
    notification, so achievements are never judged against stale stats.
    """

    def __init__(
        self,
        store: TaskStore,
        engine: ProgressEngine,
        progress: UserProgress | None = None,
        *,
        clock: Clock | None = None,
        repo: SnapshotRepository | None = None,
        notify: AchievementSink | None = None,
        auto_complete_focus_task: bool = True,
    ) -> None:
        self.store = store
        self.engine = engine
        self.progress = progress or UserProgress()
        self._clock = clock or SystemClock()
        self._repo = repo
        self._notify = notify
        self._auto_complete_focus_task = auto_complete_focus_task
        self._lock = threading.RLock()

    @classmethod
    def open(
        cls,
        repo: SnapshotRepository,
        *,
        clock: Clock | None = None,
        upcoming_days: int = 7,
        notify: AchievementSink | None = None,
        auto_complete_focus_task: bool = True,
    ) -> StudyTracker:
        """Build a tracker from the persisted snapshots in ``repo``."""
        clock = clock or SystemClock()
        store = TaskStore(clock, upcoming_days=upcoming_days)
        store.restore(_load_tasks(repo))
        engine = ProgressEngine(repo, clock=clock)
        progress = engine.load()
        engine.refresh_streak(progress, clock.now().date())
        return cls(
            store,
            engine,
            progress,
            clock=clock,
            repo=repo,
            notify=notify,
            auto_complete_focus_task=auto_complete_focus_task,
        )

    # ---- task actions ----

    def add_task(self, data: dict) -> ActionResult:
        with self._lock:
            task = self.store.add(data)
            self.engine.award_xp(self.progress, TASK_CREATED_XP)
            return self._commit(task, TASK_CREATED_XP)

    def add_from_template(self, template_id: str) -> ActionResult:
        template = TEMPLATES_BY_ID.get(template_id)
        if template is None:
            raise NotFound(f"Unknown task template {template_id!r}")
        draft = template.to_draft()
        draft["status"] = TaskStatus.PENDING
        draft["due_date"] = self._clock.now() + timedelta(days=1)
        return self.add_task(draft)

    def update_task(self, task_id: str, data: dict) -> ActionResult:
        with self._lock:
            was_completed = self.store.get_task(task_id).is_completed
            task = self.store.update(task_id, data)
            xp = 0
            if task.is_completed and not was_completed:
                xp = self._record_completion(task)
            return self._commit(task, xp)

    def delete_task(self, task_id: str) -> ActionResult:
        with self._lock:
            self.store.delete(task_id)
            return self._commit(None, 0)

    def toggle_task(self, task_id: str) -> ActionResult:
        with self._lock:
            task = self.store.toggle_status(task_id)
            xp = self._record_completion(task) if task.is_completed else 0
            return self._commit(task, xp)

    def complete_task(self, task_id: str) -> ActionResult:
        """Complete ``task_id``; a task that is already completed is left as is."""
        with self._lock:
            task = self.store.get_task(task_id)
            if task.is_completed:
                return ActionResult(task=task, stats=self.store.stats())
            return self.toggle_task(task_id)

    def add_subtask(self, task_id: str, text: str) -> TaskEntity:
        with self._lock:
            task = self.store.add_subtask(task_id, text)
            self._save_tasks()
            return task

    def toggle_subtask(self, task_id: str, index: int) -> TaskEntity:
        with self._lock:
            task = self.store.toggle_subtask(task_id, index)
            self._save_tasks()
            return task

    def reorder(self, task_ids: list[str]) -> None:
        with self._lock:
            self.store.reorder(task_ids)

    # ---- focus timer ----

    def attach_timer(self, timer: FocusTimer) -> FocusTimer:
        timer.on_phase_complete = self._on_phase_complete
        timer.on_task_completion_candidate = self._on_focus_task_candidate
        return timer

    def _on_phase_complete(self, completion: PhaseCompletion) -> None:
        if completion.completed_mode != TimerMode.FOCUS:
            return
        with self._lock:
            self.engine.add_study_time(self.progress, completion.minutes)
            self._commit(None, 0)

    def _on_focus_task_candidate(self, task_id: str) -> None:
        if not self._auto_complete_focus_task:
            return
        try:
            self.complete_task(task_id)
        except NotFound:
            logger.warning("Focus session finished for missing task %s", task_id)

    # ---- progress views ----

    def stats(self) -> TaskStats:
        return self.store.stats()

    def level_progress(self) -> float:
        return self.engine.xp_progress_to_next_level(self.progress.xp, self.progress.level)

    def achievements(self) -> list[tuple[Achievement, bool]]:
        unlocked = self.progress.unlocked_achievements
        return [(achievement, achievement.id in unlocked) for achievement in self.engine.catalog]

    def motivational_message(self, seed: int | None = None) -> str:
        return motivational_message(self.progress, seed)

    # ---- internals ----

    def _record_completion(self, task: TaskEntity) -> int:
        now = self._clock.now()
        xp = completion_xp(now)
        self.engine.award_xp(self.progress, xp)
        self.engine.register_completion(self.progress, now.date())
        due_today = self.store.tasks_due_on(now.date())
        if due_today and all(item.is_completed for item in due_today):
            if self.engine.register_perfect_day(self.progress, now.date()):
                logger.info("Perfect day %s", now.date())
        logger.info("Task %s completed (+%s xp)", task.id, xp)
        return xp

    def _commit(self, task: TaskEntity | None, xp: int) -> ActionResult:
        now = self._clock.now()
        self.engine.refresh_streak(self.progress, now.date())
        stats = self.store.stats(now)
        self.progress.total_tasks_completed = stats.completed
        self.progress.favorite_category = _favorite_category(
            self.store.completed_by_category(),
            self.progress.favorite_category,
        )
        newly = self.engine.evaluate_achievements(stats, self.progress)
        applied = self.engine.apply_unlocks(self.progress, newly)
        self.engine.persist(self.progress)
        self._save_tasks()
        if self._notify is not None:
            for achievement in applied:
                self._notify(achievement)
        return ActionResult(
            task=task,
            stats=stats,
            xp_awarded=xp + sum(achievement.reward.xp for achievement in applied),
            unlocked=tuple(applied),
        )

    def _save_tasks(self) -> None:
        if self._repo is None:
            return
        try:
            self._repo.write(TASKS_SLOT, encode_tasks(self.store.list_tasks()))
        except SQLAlchemyError:
            logger.exception("Failed to save task list")


def _favorite_category(counts: dict[Category, int], current: Category) -> Category:
    if not any(counts.values()):
        return current
    return max(Category, key=lambda category: counts.get(category, 0))


def _load_tasks(repo: SnapshotRepository) -> list[TaskEntity]:
    try:
        payload = repo.read(TASKS_SLOT)
    except SQLAlchemyError:
        logger.exception("Failed to read task list; starting empty")
        return []
    if payload is None:
        return []
    try:
        return decode_tasks(payload)
    except PersistenceCorrupt as exc:
        logger.warning("Task list snapshot is corrupt (%s); starting empty", exc)
        return []
