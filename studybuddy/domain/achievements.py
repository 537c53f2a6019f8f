from __future__ import annotations

from .entities import Achievement, Reward
from .enums import Rarity

# Rules only read counters that unlocking cannot change (never xp or level),
# so applying a round of unlocks never makes another achievement qualify.
ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement(
        id="first-steps",
        title="First Steps",
        description="Complete your first task",
        icon="🎯",
        rarity=Rarity.COMMON,
        reward=Reward(xp=10),
        rule=lambda stats, progress: stats.completed >= 1,
    ),
    Achievement(
        id="planner",
        title="Planner",
        description="Keep five tasks on your list",
        icon="📋",
        rarity=Rarity.COMMON,
        reward=Reward(xp=15),
        rule=lambda stats, progress: stats.total >= 5,
    ),
    Achievement(
        id="getting-started",
        title="Getting Started",
        description="Complete five tasks",
        icon="🚀",
        rarity=Rarity.COMMON,
        reward=Reward(xp=25),
        rule=lambda stats, progress: stats.completed >= 5,
    ),
    Achievement(
        id="task-master",
        title="Task Master",
        description="Complete ten tasks",
        icon="🏅",
        rarity=Rarity.RARE,
        reward=Reward(xp=50, badge="task-master"),
        rule=lambda stats, progress: stats.completed >= 10,
    ),
    Achievement(
        id="clean-slate",
        title="Clean Slate",
        description="Finish every task on a list of at least five",
        icon="✨",
        rarity=Rarity.EPIC,
        reward=Reward(xp=75),
        rule=lambda stats, progress: stats.total >= 5 and stats.completed == stats.total,
    ),
    Achievement(
        id="on-fire",
        title="On Fire",
        description="Complete tasks three days in a row",
        icon="🔥",
        rarity=Rarity.RARE,
        reward=Reward(xp=30),
        rule=lambda stats, progress: progress.current_streak >= 3,
    ),
    Achievement(
        id="week-warrior",
        title="Week Warrior",
        description="Reach a seven day streak",
        icon="⚔️",
        rarity=Rarity.EPIC,
        reward=Reward(xp=100, badge="week-warrior"),
        rule=lambda stats, progress: progress.longest_streak >= 7,
    ),
    Achievement(
        id="perfect-day",
        title="Perfect Day",
        description="Finish everything due on a day",
        icon="🌟",
        rarity=Rarity.RARE,
        reward=Reward(xp=40),
        rule=lambda stats, progress: progress.perfect_days >= 1,
    ),
    Achievement(
        id="perfectionist",
        title="Perfectionist",
        description="Have seven perfect days",
        icon="💎",
        rarity=Rarity.EPIC,
        reward=Reward(xp=150, title="Perfectionist"),
        rule=lambda stats, progress: progress.perfect_days >= 7,
    ),
    Achievement(
        id="deep-focus",
        title="Deep Focus",
        description="Spend an hour in focus sessions",
        icon="🧠",
        rarity=Rarity.COMMON,
        reward=Reward(xp=20),
        rule=lambda stats, progress: progress.study_time_minutes >= 60,
    ),
    Achievement(
        id="scholar",
        title="Scholar",
        description="Spend ten hours in focus sessions",
        icon="📚",
        rarity=Rarity.EPIC,
        reward=Reward(xp=200, title="Scholar"),
        rule=lambda stats, progress: progress.study_time_minutes >= 600,
    ),
    Achievement(
        id="centurion",
        title="Centurion",
        description="Complete one hundred tasks",
        icon="👑",
        rarity=Rarity.LEGENDARY,
        reward=Reward(xp=500, title="Centurion", badge="crown"),
        rule=lambda stats, progress: progress.total_tasks_completed >= 100,
    ),
    Achievement(
        id="unstoppable",
        title="Unstoppable",
        description="Reach a thirty day streak",
        icon="🏆",
        rarity=Rarity.LEGENDARY,
        reward=Reward(xp=300, badge="trophy"),
        rule=lambda stats, progress: progress.longest_streak >= 30,
    ),
)

ACHIEVEMENTS_BY_ID = {achievement.id: achievement for achievement in ACHIEVEMENTS}
