"""Timed sub-events inside a season: participation and reward claims."""

from __future__ import annotations

import structlog

from idle_season.season.ledger import RewardLedger
from idle_season.season.rewards import REWARD_TYPE_EVENT, build_reward_payload, event_key, grant_view
from idle_season.season.schemas import ClaimResult, OperationResult, SeasonError
from idle_season.season.store import SeasonStore
from idle_season.season.tracker import InactiveSeason, SeasonProgressTracker

logger = structlog.get_logger()


class SeasonEventService:
    def __init__(self, tracker: SeasonProgressTracker, ledger: RewardLedger, store: SeasonStore) -> None:
        self.tracker = tracker
        self.ledger = ledger
        self.store = store

    async def participate(self, player_id: str, event_id: str) -> OperationResult:
        season = self.tracker.resolve_active_season()
        if isinstance(season, InactiveSeason):
            return OperationResult(success=False, error=season.reason)

        event = season.find_event(event_id)
        if event is None:
            return OperationResult(success=False, error=SeasonError.EVENT_NOT_FOUND)
        if not event.is_active(self.tracker.clock()):
            return OperationResult(success=False, error=SeasonError.EVENT_NOT_ACTIVE)

        await self.store.mark_event_participated(player_id, season.id, event_id)
        logger.info("season_event_participated", player_id=player_id, season_id=season.id, event_id=event_id)
        return OperationResult(success=True)

    async def claim_reward(self, player_id: str, event_id: str) -> ClaimResult:
        season = self.tracker.current_season()
        if season is None:
            return ClaimResult(success=False, error=SeasonError.SEASON_NOT_FOUND)

        event = season.find_event(event_id)
        if event is None:
            return ClaimResult(success=False, error=SeasonError.EVENT_NOT_FOUND)
        if not event.rewards:
            return ClaimResult(success=False, error=SeasonError.NO_REWARDS_DEFINED)

        participation = await self.store.get_event_participation(player_id, season.id, event_id)
        if participation is None or not participation.participated:
            return ClaimResult(success=False, error=SeasonError.NOT_PARTICIPATED)
        if participation.reward_claimed:
            return ClaimResult(success=False, error=SeasonError.REWARD_ALREADY_CLAIMED)

        outcome = await self.ledger.grant(
            player_id,
            season.id,
            event_key(event_id),
            reward_type=REWARD_TYPE_EVENT,
            payload=build_reward_payload(event.rewards),
            tier=event_id,
            event_id=event_id,
        )
        if not outcome.success or outcome.grant is None:
            return ClaimResult(success=False, error=outcome.error)

        logger.info("season_event_reward_claimed", player_id=player_id, season_id=season.id, event_id=event_id)
        return ClaimResult(success=True, reward=grant_view(outcome.grant))
