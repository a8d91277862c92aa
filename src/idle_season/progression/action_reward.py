"""Experience rewards for timed actions (construction jobs).

raw = tier_base * sqrt(max(1, minutes)) * (1 + max(0, level_bonus) * 0.05) * quality

The applied reward never exceeds 20% of the XP the performer needs for their
next level, so long jobs cannot be farmed for several levels at once.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from idle_season.progression.level_curve import LevelCurve, get_level_curve

TIER_BASE_XP: dict[int, int] = {
    1: 40,
    2: 90,
    3: 220,
    4: 550,
}

LEVEL_BONUS_STEP = 0.05
QUALITY_MIN = 0.8
QUALITY_MAX = 1.15


@dataclass(frozen=True)
class ActionReward:
    raw_xp: int
    applied_xp: int
    cap: int


def clamp_quality(multiplier: float | None) -> float:
    if multiplier is None or not math.isfinite(multiplier):
        return 1.0
    return min(QUALITY_MAX, max(QUALITY_MIN, multiplier))


def calculate_action_reward(
    tier: int,
    duration_minutes: float,
    level_bonus: float,
    performer_level: int,
    quality_multiplier: float | None = None,
    curve: LevelCurve | None = None,
) -> ActionReward:
    """Compute the bounded XP reward for one finished action.

    Raises ValueError for an unknown tier.
    """
    if tier not in TIER_BASE_XP:
        raise ValueError(f"Unknown action tier: {tier}")
    curve = curve or get_level_curve()

    safe_duration = duration_minutes if math.isfinite(duration_minutes) else 1
    bonus_factor = 1 + max(0, level_bonus) * LEVEL_BONUS_STEP
    raw = TIER_BASE_XP[tier] * math.sqrt(max(1, safe_duration)) * bonus_factor * clamp_quality(quality_multiplier)
    raw_xp = math.floor(raw + 0.5)

    cap = curve.xp_cap_for_action(performer_level)
    if cap <= 0:
        applied = max(0, raw_xp)
    else:
        applied = min(raw_xp, cap)

    return ActionReward(raw_xp=raw_xp, applied_xp=applied, cap=cap)


def projected_level_after(current_level: int, xp_gain: int, curve: LevelCurve | None = None) -> int:
    """Level a player would reach from the start of ``current_level`` after ``xp_gain``.

    A single gain can lift at most one level.
    """
    curve = curve or get_level_curve()
    threshold = curve.threshold_for_level(current_level)
    if threshold <= 0:
        return current_level
    capped = min(threshold, xp_gain)
    return current_level + 1 if capped >= threshold else current_level
