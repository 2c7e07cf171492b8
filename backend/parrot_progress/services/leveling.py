"""Leveling curve: converts total XP into a level and in-level progress."""

from __future__ import annotations

import logging
import math

from ..models import LevelInfo, LevelResolution, ProgressionState

logger = logging.getLogger(__name__)

BASE_LEVEL_XP = 1000
LEVEL_EXPONENT = 1.5


def required_xp(level: int) -> int:
    """XP needed to go from ``level`` to ``level + 1``."""

    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return math.floor(BASE_LEVEL_XP * level**LEVEL_EXPONENT)


def cumulative_xp(level: int) -> int:
    """Total XP spent to reach ``level`` from level 1."""

    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return sum(required_xp(i) for i in range(1, level))


def resolve_level(total_xp: int, current_level: int) -> LevelResolution:
    """Advance ``current_level`` as far as ``total_xp`` allows.

    A single grant may cross several thresholds, so the walk loops until the
    remaining in-level XP is below the next requirement.
    """

    if total_xp < 0:
        raise ValueError(f"total_xp must be >= 0, got {total_xp}")

    level = current_level
    current_level_xp = total_xp - cumulative_xp(level)
    if current_level_xp < 0:
        raise ValueError(
            f"total_xp {total_xp} is below the {cumulative_xp(level)} XP already spent to reach level {level}"
        )

    while current_level_xp >= required_xp(level):
        current_level_xp -= required_xp(level)
        level += 1

    return LevelResolution(
        level=level,
        current_level_xp=current_level_xp,
        next_level_required_xp=required_xp(level),
        leveled_up=level > current_level,
    )


def level_info(state: ProgressionState) -> LevelInfo:
    """Describe the stored level without advancing it."""

    current_level_xp = state.total_xp - cumulative_xp(state.level)
    next_required = required_xp(state.level)
    if current_level_xp >= next_required:
        logger.warning(
            "Stored level %s for user %s is stale (%s/%s XP); a level-up is pending",
            state.level,
            state.user_id,
            current_level_xp,
            next_required,
        )
    return LevelInfo(
        level=state.level,
        total_xp=state.total_xp,
        current_level_xp=current_level_xp,
        next_level_required_xp=next_required,
    )
