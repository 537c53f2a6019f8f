from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta

from sqlalchemy.exc import SQLAlchemyError

from studybuddy.domain.achievements import ACHIEVEMENTS
from studybuddy.domain.entities import Achievement, TaskStats, UserProgress
from studybuddy.domain.errors import InvalidAmount, PersistenceCorrupt
from studybuddy.domain.leveling import level_for_xp, xp_progress_to_next_level, xp_threshold
from studybuddy.infra.clock import Clock, SystemClock
from studybuddy.infra.codec import decode_progress, decode_unlocks, encode_progress, encode_unlocks
from studybuddy.infra.repository import ACHIEVEMENTS_SLOT, PROGRESS_SLOT, SnapshotRepository

logger = logging.getLogger(__name__)

TASK_CREATED_XP = 5
TASK_COMPLETED_XP = 10
OFF_HOURS_BONUS_XP = 25
EARLY_BIRD_BEFORE = time(8, 0)
NIGHT_OWL_AFTER = time(22, 0)


def completion_xp(moment: datetime) -> int:
    """Base completion XP plus the bonus for finishing before 08:00 or after 22:00."""
    at = moment.time()
    if at < EARLY_BIRD_BEFORE or at > NIGHT_OWL_AFTER:
        return TASK_COMPLETED_XP + OFF_HOURS_BONUS_XP
    return TASK_COMPLETED_XP


class ProgressEngine:
    """XP, levels, achievement unlocking and the persisted progress snapshot.

    The engine never holds a UserProgress of its own: callers pass the
    instance they own into every call. What the engine does own is the
    unlock overlay (when each catalog entry was unlocked), which is saved
    next to the progress snapshot.
    """

    level_for_xp = staticmethod(level_for_xp)
    xp_threshold = staticmethod(xp_threshold)
    xp_progress_to_next_level = staticmethod(xp_progress_to_next_level)

    def __init__(
        self,
        repo: SnapshotRepository | None = None,
        catalog: Sequence[Achievement] = ACHIEVEMENTS,
        clock: Clock | None = None,
    ) -> None:
        self._repo = repo
        self._catalog = tuple(catalog)
        self._clock = clock or SystemClock()
        self._unlocked_at: dict[str, datetime] = {}

    @property
    def catalog(self) -> tuple[Achievement, ...]:
        return self._catalog

    @property
    def unlocked_at(self) -> dict[str, datetime]:
        return dict(self._unlocked_at)

    def award_xp(self, progress: UserProgress, amount: int) -> int:
        """Add ``amount`` XP and return the resulting level. Negative amounts are rejected."""
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmount(f"XP amount must be an integer, got {amount!r}")
        if amount < 0:
            raise InvalidAmount(f"XP amount must not be negative, got {amount}")
        previous = progress.level
        progress.xp += amount
        if progress.level > previous:
            logger.info("Level up %s -> %s (xp=%s)", previous, progress.level, progress.xp)
        return progress.level

    def evaluate_achievements(self, stats: TaskStats, progress: UserProgress) -> list[Achievement]:
        """Catalog entries not yet unlocked whose rule holds for this snapshot."""
        return [
            achievement
            for achievement in self._catalog
            if achievement.id not in progress.unlocked_achievements
            and achievement.is_met(stats, progress)
        ]

    def apply_unlocks(
        self,
        progress: UserProgress,
        achievements: Iterable[Achievement],
    ) -> list[Achievement]:
        """Unlock each achievement once and pay out its XP; returns the ones actually applied."""
        applied: list[Achievement] = []
        for achievement in achievements:
            if achievement.id in progress.unlocked_achievements:
                continue
            progress.unlocked_achievements.add(achievement.id)
            self._unlocked_at.setdefault(achievement.id, self._clock.now())
            self.award_xp(progress, achievement.reward.xp)
            applied.append(achievement)
            logger.info(
                "Achievement unlocked id=%s rarity=%s xp=%s",
                achievement.id,
                achievement.rarity.value,
                achievement.reward.xp,
            )
        return applied

    # ---- streaks and counters ----

    def register_completion(self, progress: UserProgress, day: date) -> None:
        last = progress.last_completion_date
        if last is not None and day <= last:
            return
        if last is not None and day - last == timedelta(days=1):
            progress.current_streak += 1
        else:
            progress.current_streak = 1
        progress.longest_streak = max(progress.longest_streak, progress.current_streak)
        progress.last_completion_date = day

    def refresh_streak(self, progress: UserProgress, today: date) -> None:
        """Drop a streak whose last completion is older than yesterday."""
        last = progress.last_completion_date
        if last is not None and today - last > timedelta(days=1) and progress.current_streak:
            logger.info("Streak of %s days ended (last completion %s)", progress.current_streak, last)
            progress.current_streak = 0

    def register_perfect_day(self, progress: UserProgress, day: date) -> bool:
        if progress.last_perfect_day == day:
            return False
        progress.perfect_days += 1
        progress.last_perfect_day = day
        return True

    def add_study_time(self, progress: UserProgress, minutes: int) -> None:
        if minutes < 0:
            raise InvalidAmount(f"Study time must not be negative, got {minutes}")
        progress.study_time_minutes += minutes

    # ---- persistence ----

    def persist(self, progress: UserProgress) -> bool:
        if self._repo is None:
            return False
        overlay = {
            key: self._unlocked_at.get(key, self._clock.now())
            for key in sorted(progress.unlocked_achievements)
        }
        self._unlocked_at.update(overlay)
        try:
            self._repo.write(PROGRESS_SLOT, encode_progress(progress))
            self._repo.write(ACHIEVEMENTS_SLOT, encode_unlocks(overlay))
        except SQLAlchemyError:
            logger.exception("Failed to save progress snapshot")
            return False
        return True

    def load(self) -> UserProgress:
        """Read the saved snapshot; anything missing or unreadable yields defaults."""
        if self._repo is None:
            return UserProgress()

        progress = self._read_slot(PROGRESS_SLOT, decode_progress) or UserProgress()
        overlay = self._read_slot(ACHIEVEMENTS_SLOT, decode_unlocks) or {}
        self._unlocked_at = dict(overlay)
        progress.unlocked_achievements |= set(overlay)
        logger.info(
            "Progress loaded level=%s xp=%s unlocked=%s",
            progress.level,
            progress.xp,
            len(progress.unlocked_achievements),
        )
        return progress

    def _read_slot(self, key: str, decode):
        try:
            payload = self._repo.read(key)
        except SQLAlchemyError:
            logger.exception("Failed to read snapshot slot %s; using defaults", key)
            return None
        if payload is None:
            return None
        try:
            return decode(payload)
        except PersistenceCorrupt as exc:
            logger.warning("Snapshot slot %s is corrupt (%s); using defaults", key, exc)
            return None
