"""Reward ledger: the only place a season reward is ever paid out.

A grant is keyed by (player, season, reward_key). The store's compare-and-set
``claim_grant`` decides the single winner; the payload is applied inside the
same atomic block, so a failed balance write also undoes the claim and no
reward is ever left claimed-but-unpaid.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

import structlog
from redis.asyncio import Redis

from idle_season.season.rewards import LEADERBOARD_KEY
from idle_season.season.schemas import RewardPayload, SeasonError
from idle_season.season.store import BalanceStore, RewardGrant, SeasonStore
from idle_season.season.tracker import Clock, utc_now

logger = structlog.get_logger()

GRANT_CHANNEL = "pubsub:season_reward_granted"


@dataclass(frozen=True)
class GrantOutcome:
    success: bool
    grant: RewardGrant | None = None
    error: str | None = None


class RewardLedger:
    def __init__(
        self,
        store: SeasonStore,
        balances: BalanceStore,
        redis: Redis | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.balances = balances
        self.redis = redis
        self.clock = clock

    async def is_claimed(self, player_id: str, season_id: str, reward_key: str) -> bool:
        grant = await self.store.get_grant(player_id, season_id, reward_key)
        return grant is not None and grant.claimed

    async def grant(
        self,
        player_id: str,
        season_id: str,
        reward_key: str,
        *,
        reward_type: str,
        payload: RewardPayload,
        tier: str | None = None,
        rank: int | None = None,
        event_id: str | None = None,
    ) -> GrantOutcome:
        """Grant a reward at most once. Returns ``reward_already_claimed`` for repeats.

        The matching progress flag (leaderboard claimed, event reward claimed)
        commits or rolls back together with the grant.
        """
        if await self.is_claimed(player_id, season_id, reward_key):
            return GrantOutcome(success=False, error=SeasonError.REWARD_ALREADY_CLAIMED)

        now = self.clock()
        pending = RewardGrant(
            player_id=player_id,
            season_id=season_id,
            reward_key=reward_key,
            reward_type=reward_type,
            reward_tier=tier,
            final_rank=rank,
            reward_payload=payload.model_dump(),
        )

        async with self.store.atomic():
            claimed = await self.store.claim_grant(pending, now)
            if claimed is None:
                # Lost the race to a concurrent claim for the same key
                return GrantOutcome(success=False, error=SeasonError.REWARD_ALREADY_CLAIMED)

            await self._apply_payload(player_id, payload)
            if reward_key == LEADERBOARD_KEY:
                await self.store.mark_leaderboard_claimed(player_id, season_id, now)
            if event_id is not None:
                await self.store.mark_event_reward_claimed(player_id, season_id, event_id)

        logger.info(
            "season_reward_granted",
            player_id=player_id,
            season_id=season_id,
            reward_key=reward_key,
            reward_tier=tier,
            rank=rank,
            payload=claimed.reward_payload,
        )
        await self._publish(claimed)
        return GrantOutcome(success=True, grant=claimed)

    async def _apply_payload(self, player_id: str, payload: RewardPayload) -> None:
        if payload.energy > 0:
            await self.balances.adjust_energy(player_id, payload.energy)
        if payload.stars > 0:
            await self.balances.adjust_stars(player_id, payload.stars)
        # Cosmetic ids ride along in the grant row for the cosmetics service to pick up

    async def _publish(self, grant: RewardGrant) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.publish(
                GRANT_CHANNEL,
                json.dumps({
                    "player_id": grant.player_id,
                    "season_id": grant.season_id,
                    "reward_key": grant.reward_key,
                    "reward_tier": grant.reward_tier,
                    "payload": grant.reward_payload,
                }),
            )
        except Exception:
            logger.warning("season_reward_publish_failed", reward_key=grant.reward_key, exc_info=True)
