"""Leaderboard reward distribution at season close.

The batch run and the interactive claim resolve rewards the same way, use
the same ledger key and rely on the same stored rank, so whichever reaches a
player first wins and the other becomes a no-op. Re-running the batch only
touches players whose leaderboard grant is still unclaimed.
"""

from __future__ import annotations

import structlog

from idle_season.season.content import SeasonDefinition
from idle_season.season.ledger import GrantOutcome, RewardLedger
from idle_season.season.rewards import (
    LEADERBOARD_KEY,
    REWARD_TYPE_LEADERBOARD,
    build_reward_payload,
    find_leaderboard_reward,
    grant_view,
    reward_tier_for_rank,
)
from idle_season.season.schemas import ClaimResult, DistributionSummary, SeasonError
from idle_season.season.store import SeasonStore
from idle_season.season.tracker import DEFAULT_RANK_WINDOW, SeasonProgressTracker

logger = structlog.get_logger()


class LeaderboardRewardDistributor:
    def __init__(
        self,
        tracker: SeasonProgressTracker,
        ledger: RewardLedger,
        store: SeasonStore,
        rank_window: int = DEFAULT_RANK_WINDOW,
    ) -> None:
        self.tracker = tracker
        self.ledger = ledger
        self.store = store
        self.rank_window = rank_window

    async def _grant_for_rank(self, season: SeasonDefinition, player_id: str, rank: int) -> GrantOutcome | None:
        rule = find_leaderboard_reward(season.leaderboard_rewards, rank)
        if rule is None:
            return None
        return await self.ledger.grant(
            player_id,
            season.id,
            LEADERBOARD_KEY,
            reward_type=REWARD_TYPE_LEADERBOARD,
            payload=build_reward_payload(rule.rewards),
            tier=reward_tier_for_rank(rank),
            rank=rank,
        )

    async def distribute(self, force: bool = False) -> DistributionSummary:
        """Grant every eligible stored rank its reward. Safe to re-run."""
        season = self.tracker.current_season()
        if season is None:
            return DistributionSummary(skipped=True, reason=SeasonError.SEASON_NOT_FOUND)
        if self.tracker.is_season_active(season) and not force:
            return DistributionSummary(skipped=True, reason=SeasonError.SEASON_ACTIVE, season_id=season.id)

        max_rank = season.highest_rewarded_rank()
        if max_rank <= 0:
            return DistributionSummary(skipped=True, reason=SeasonError.NO_REWARDS_CONFIGURED, season_id=season.id)

        if not await self.store.has_stored_ranks(season.id):
            await self.tracker.refresh_stored_ranks(season.id, max(self.rank_window, max_rank))

        candidates = await self.store.ranked_participants(season.id, max_rank)
        summary = DistributionSummary(season_id=season.id, candidates=len(candidates))

        for progress in candidates:
            rank = progress.leaderboard_rank
            player_id = progress.player_id
            if rank is None:
                continue
            if progress.claimed_leaderboard_reward:
                summary.already_claimed += 1
                continue
            try:
                outcome = await self._grant_for_rank(season, player_id, rank)
            except Exception:
                summary.failed += 1
                logger.exception(
                    "season_reward_distribution_failed", player_id=player_id, season_id=season.id, rank=rank,
                )
                continue

            if outcome is None:
                summary.no_rule += 1
            elif outcome.success:
                summary.distributed += 1
            else:
                summary.already_claimed += 1

        logger.info(
            "season_rewards_distributed",
            season_id=season.id,
            force=force,
            candidates=summary.candidates,
            distributed=summary.distributed,
            already_claimed=summary.already_claimed,
            no_rule=summary.no_rule,
            failed=summary.failed,
        )
        return summary

    async def claim_leaderboard_reward(self, player_id: str) -> ClaimResult:
        """Interactive counterpart of ``distribute`` for a single player."""
        season = self.tracker.current_season()
        if season is None:
            return ClaimResult(success=False, error=SeasonError.SEASON_NOT_FOUND)
        if self.tracker.is_season_active(season):
            return ClaimResult(success=False, error=SeasonError.SEASON_ACTIVE)

        progress = await self.store.get_progress(player_id, season.id)
        if progress is None or progress.leaderboard_rank is None:
            return ClaimResult(success=False, error=SeasonError.NOT_RANKED)

        if progress.claimed_leaderboard_reward or await self.ledger.is_claimed(player_id, season.id, LEADERBOARD_KEY):
            return ClaimResult(success=False, error=SeasonError.REWARD_ALREADY_CLAIMED)

        outcome = await self._grant_for_rank(season, player_id, progress.leaderboard_rank)
        if outcome is None:
            return ClaimResult(success=False, error=SeasonError.NO_REWARD_FOR_RANK)
        if not outcome.success or outcome.grant is None:
            return ClaimResult(success=False, error=outcome.error)

        logger.info(
            "season_leaderboard_reward_claimed",
            player_id=player_id,
            season_id=season.id,
            rank=progress.leaderboard_rank,
            reward_tier=outcome.grant.reward_tier,
        )
        return ClaimResult(success=True, reward=grant_view(outcome.grant))
