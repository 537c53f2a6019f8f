from __future__ import annotations

import random

from .entities import UserProgress

FOCUS_QUOTES = (
    "You're doing amazing! Keep going! 💪",
    "Focus is the bridge between goals and achievement 🌉",
    "Every minute of focus is a step towards success 📈",
    "Your future self is cheering you on! 🎉",
    "Deep work creates deep results 🎯",
    "You're building the habit of excellence ⭐",
)

_STARTER_MESSAGES = (
    "Every journey starts with a single task. Let's go! 🚀",
    "Add a task and take the first step today 🌱",
    "Small steps add up. Start with one task ✏️",
)

_STREAK_MESSAGES = (
    "{streak} days in a row! Keep the fire burning 🔥",
    "Your {streak} day streak is impressive. Don't break the chain! ⛓️",
    "Consistency wins: {streak} days and counting 📆",
)

_LEVEL_MESSAGES = (
    "Level {level} and climbing! 🧗",
    "{completed} tasks done. You're unstoppable! ⚡",
    "Great progress! Level {level} looks good on you 🏆",
    "Keep it up, {xp} XP earned so far ✨",
)


def _pick(options: tuple[str, ...], seed: int | None) -> str:
    return options[random.Random(seed).randrange(len(options))]


def focus_quote(seed: int | None) -> str:
    return _pick(FOCUS_QUOTES, seed)


def motivational_message(progress: UserProgress, seed: int | None) -> str:
    """Pick an encouragement line for ``progress``; equal seeds give equal text."""
    if progress.total_tasks_completed == 0 and progress.xp == 0:
        template = _pick(_STARTER_MESSAGES, seed)
    elif progress.current_streak >= 3:
        template = _pick(_STREAK_MESSAGES, seed)
    else:
        template = _pick(_LEVEL_MESSAGES, seed)
    return template.format(
        streak=progress.current_streak,
        level=progress.level,
        completed=progress.total_tasks_completed,
        xp=progress.xp,
    )
