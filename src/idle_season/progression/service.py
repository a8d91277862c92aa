"""Applies finished-action XP to a player's lifetime level and to the season."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from idle_season.progression.action_reward import ActionReward, calculate_action_reward
from idle_season.progression.level_curve import LevelCurve, get_level_curve
from idle_season.season.store import BalanceStore, PlayerNotFoundError
from idle_season.season.tracker import SeasonProgressTracker

logger = structlog.get_logger()


@dataclass(frozen=True)
class ActionOutcome:
    reward: ActionReward
    total_xp: int
    level: int
    previous_level: int

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level


class ProgressionService:
    def __init__(
        self,
        balances: BalanceStore,
        tracker: SeasonProgressTracker,
        curve: LevelCurve | None = None,
    ) -> None:
        self.balances = balances
        self.tracker = tracker
        self.curve = curve or get_level_curve()

    async def award_action_experience(
        self,
        player_id: str,
        tier: int,
        duration_minutes: float,
        level_bonus: float,
        quality_multiplier: float | None = None,
    ) -> ActionOutcome:
        """Grant the capped XP for a finished action and recompute the level.

        Raises PlayerNotFoundError when the player has no balance row.
        """
        current = await self.balances.get_balances(player_id)
        if current is None:
            raise PlayerNotFoundError(player_id)

        reward = calculate_action_reward(
            tier,
            duration_minutes,
            level_bonus,
            current.level,
            quality_multiplier=quality_multiplier,
            curve=self.curve,
        )

        updated = await self.balances.add_experience(player_id, reward.applied_xp)
        level_info = self.curve.level_from_total_experience(updated.xp)
        if level_info.level != updated.level:
            await self.balances.set_level(player_id, level_info.level)
        if level_info.level > current.level:
            logger.info("player_level_up", player_id=player_id, old_level=current.level, new_level=level_info.level)

        await self.tracker.record_experience(player_id, reward.applied_xp)

        return ActionOutcome(
            reward=reward,
            total_xp=updated.xp,
            level=level_info.level,
            previous_level=current.level,
        )
