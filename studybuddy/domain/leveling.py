from __future__ import annotations

from math import isqrt

# Level L starts at XP_STEP * (L - 1) ** 2 cumulative XP: 0, 100, 400, 900, ...
XP_STEP = 100


def xp_threshold(level: int) -> int:
    """Cumulative XP needed to reach ``level`` (levels start at 1)."""
    if level <= 1:
        return 0
    return XP_STEP * (level - 1) ** 2


def level_for_xp(xp: int) -> int:
    if xp <= 0:
        return 1
    return isqrt(xp // XP_STEP) + 1


def xp_progress_to_next_level(xp: int, level: int) -> float:
    """Percentage in [0, 100] of the way from ``level`` to ``level + 1``."""
    level = max(level, 1)
    start = xp_threshold(level)
    span = xp_threshold(level + 1) - start
    percent = (xp - start) / span * 100
    return max(0.0, min(100.0, percent))
