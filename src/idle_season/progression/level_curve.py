"""Player level curve.

XP thresholds are interpolated in log-log space between a handful of
calibration anchors, so each segment is a power law that passes exactly
through both of its anchors. Past the last anchor the threshold stays flat,
and ``max_level`` is a hard ceiling.

Thresholds and cumulative sums are memoised per curve instance. Call
``cache_clear()`` after changing anything the curve reads (tests only; a curve
is immutable once built).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

MIN_LEVEL = 1
MAX_LEVEL = 100
ACTION_CAP_RATIO = 0.2

XP_ANCHORS: tuple[tuple[int, int], ...] = (
    (1, 255),
    (10, 1452),
    (30, 8943),
    (60, 23912),
    (90, 49623),
    (100, 70002),
)


@dataclass(frozen=True)
class LevelProgress:
    level: int
    xp_into_level: int
    xp_for_next_level: int
    xp_to_next_level: int


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class LevelCurve:
    """Experience <-> level mapping built from (level, threshold) anchors."""

    def __init__(
        self,
        anchors: tuple[tuple[int, int], ...] | list[tuple[int, int]] = XP_ANCHORS,
        *,
        min_level: int = MIN_LEVEL,
        max_level: int = MAX_LEVEL,
    ) -> None:
        if not anchors:
            raise ValueError("Level curve needs at least one anchor")
        ordered = tuple(sorted((int(level), int(xp)) for level, xp in anchors))
        if any(xp <= 0 or level <= 0 for level, xp in ordered):
            raise ValueError("Anchor levels and thresholds must be positive")
        if max_level < min_level:
            raise ValueError("max_level must be >= min_level")

        self.anchors = ordered
        self.min_level = min_level
        self.max_level = max_level
        self._threshold_cache: dict[int, int] = {}
        self._cumulative_cache: dict[int, int] = {}

    def cache_clear(self) -> None:
        self._threshold_cache.clear()
        self._cumulative_cache.clear()

    def normalize_level(self, level: float) -> int:
        """Clamp any numeric level into [min_level, max_level]."""
        if not math.isfinite(level):
            return self.min_level
        return min(self.max_level, max(self.min_level, math.floor(level)))

    def _interpolate(self, level: int) -> int:
        upper_idx = next(
            (idx for idx, (anchor_level, _) in enumerate(self.anchors) if level <= anchor_level),
            None,
        )
        if upper_idx is None:
            return self.anchors[-1][1]

        upper_level, upper_xp = self.anchors[upper_idx]
        if upper_level == level or upper_idx == 0:
            return upper_xp

        lower_level, lower_xp = self.anchors[upper_idx - 1]
        exponent = math.log(upper_xp / lower_xp) / math.log(upper_level / lower_level)
        return _round_half_up(lower_xp * (level / lower_level) ** exponent)

    def threshold_for_level(self, level: float) -> int:
        """XP needed to advance from ``level`` to the next one."""
        safe_level = self.normalize_level(level)
        cached = self._threshold_cache.get(safe_level)
        if cached is not None:
            return cached
        value = self._interpolate(safe_level)
        self._threshold_cache[safe_level] = value
        return value

    def cumulative_to_level(self, level: float) -> int:
        """Sum of thresholds from ``min_level`` through ``level`` inclusive."""
        safe_level = self.normalize_level(level)
        cached = self._cumulative_cache.get(safe_level)
        if cached is not None:
            return cached

        cumulative = 0
        for current in range(self.min_level, safe_level + 1):
            cumulative += self.threshold_for_level(current)
        self._cumulative_cache[safe_level] = cumulative
        return cumulative

    def xp_cap_for_action(self, level: float) -> int:
        """Most XP one timed action may grant a player at ``level``."""
        return math.floor(self.threshold_for_level(level) * ACTION_CAP_RATIO)

    def level_from_total_experience(self, total_xp: float) -> LevelProgress:
        """Walk the curve from the bottom until the remaining XP runs out."""
        if not math.isfinite(total_xp) or total_xp < 0:
            total_xp = 0
        clamped_total = math.floor(total_xp)

        accumulated = 0
        for level in range(self.min_level, self.max_level):
            threshold = self.threshold_for_level(level)
            if accumulated + threshold > clamped_total:
                xp_into_level = clamped_total - accumulated
                return LevelProgress(
                    level=level,
                    xp_into_level=xp_into_level,
                    xp_for_next_level=threshold,
                    xp_to_next_level=max(0, threshold - xp_into_level),
                )
            accumulated += threshold

        # Max level reached; no carry-over past the ceiling
        cap_threshold = self.threshold_for_level(self.max_level)
        return LevelProgress(
            level=self.max_level,
            xp_into_level=min(clamped_total - accumulated, cap_threshold),
            xp_for_next_level=cap_threshold,
            xp_to_next_level=0,
        )


DEFAULT_LEVEL_CURVE = LevelCurve()


def get_level_curve() -> LevelCurve:
    """Shared curve built from the production anchors."""
    return DEFAULT_LEVEL_CURVE
