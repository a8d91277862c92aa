"""Battle pass: tier layout, premium purchase and per-tier claims.

Tier N unlocks at ``xp_per_tier * (N - 1)`` season XP, so tier 1 is open
from the start. Every tier has a free and a premium track; each track's
reward is its own ledger key, so the ledger's once-only guarantee covers
every tier independently.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from idle_season.season.content import BattlePassConfig, RewardDescriptor, SeasonDefinition
from idle_season.season.ledger import RewardLedger
from idle_season.season.rewards import (
    REWARD_TYPE_BATTLE_PASS,
    TRACK_FREE,
    TRACK_PREMIUM,
    TRACKS,
    battle_pass_key,
    build_reward_payload,
    grant_view,
)
from idle_season.season.schemas import (
    BattlePassRewardView,
    BattlePassTierView,
    BattlePassView,
    ClaimResult,
    OperationResult,
    SeasonError,
)
from idle_season.season.store import (
    BalanceStore,
    InsufficientStarsError,
    PassPurchase,
    RewardGrant,
    SeasonProgress,
    SeasonStore,
)
from idle_season.season.tracker import SeasonProgressTracker

logger = structlog.get_logger()


class _PurchaseConflict(Exception):
    """A concurrent request recorded the purchase first; rolls back our debit."""


def required_xp_for_tier(config: BattlePassConfig, tier: int) -> int:
    return config.xp_per_tier * (tier - 1)


def current_tier(config: BattlePassConfig, season_xp: int) -> int:
    if config.tiers <= 0:
        return 0
    if config.xp_per_tier <= 0:
        return config.tiers
    return min(config.tiers, season_xp // config.xp_per_tier + 1)


def _reward_views(rewards: Sequence[RewardDescriptor]) -> list[BattlePassRewardView]:
    return [BattlePassRewardView(type=r.type, amount=r.amount, item_id=r.item_id) for r in rewards]


def build_battle_pass_view(
    config: BattlePassConfig,
    progress: SeasonProgress | None,
    purchase: PassPurchase | None,
    grants: Sequence[RewardGrant],
) -> BattlePassView:
    """Read-model for one player's battle pass. Pure; no store access."""
    season_xp = progress.season_xp if progress else 0
    premium = purchase is not None and purchase.premium
    claimed_keys = {g.reward_key for g in grants if g.claimed}

    if not config.enabled or config.tiers <= 0:
        return BattlePassView(
            enabled=config.enabled,
            premium_purchased=premium,
            premium_price_stars=config.premium_price_stars,
            total_tiers=max(0, config.tiers),
            xp_per_tier=config.xp_per_tier,
            current_tier=0,
            xp_into_current_tier=0,
            xp_to_next_tier=None,
            next_tier_xp=None,
            tiers=[],
        )

    tier_now = current_tier(config, season_xp)
    tier_start = required_xp_for_tier(config, tier_now)
    if tier_now >= config.tiers:
        xp_to_next = None
        next_tier_xp = None
    else:
        next_tier_xp = required_xp_for_tier(config, tier_now + 1)
        xp_to_next = max(0, next_tier_xp - season_xp)

    tiers: list[BattlePassTierView] = []
    for tier in range(1, config.tiers + 1):
        required = required_xp_for_tier(config, tier)
        tier_rewards = config.rewards_for(tier)
        free_rewards = list(tier_rewards.free) if tier_rewards else []
        premium_rewards = list(tier_rewards.premium) if tier_rewards else []
        reached = season_xp >= required
        free_claimed = battle_pass_key(TRACK_FREE, tier) in claimed_keys
        premium_claimed = battle_pass_key(TRACK_PREMIUM, tier) in claimed_keys

        tiers.append(BattlePassTierView(
            tier=tier,
            required_xp=required,
            free_rewards=_reward_views(free_rewards),
            premium_rewards=_reward_views(premium_rewards),
            free_claimed=free_claimed,
            premium_claimed=premium_claimed,
            free_claimable=reached and not free_claimed and bool(free_rewards),
            premium_claimable=reached and premium and not premium_claimed and bool(premium_rewards),
        ))

    return BattlePassView(
        enabled=True,
        premium_purchased=premium,
        premium_price_stars=config.premium_price_stars,
        total_tiers=config.tiers,
        xp_per_tier=config.xp_per_tier,
        current_tier=tier_now,
        xp_into_current_tier=max(0, season_xp - tier_start),
        xp_to_next_tier=xp_to_next,
        next_tier_xp=next_tier_xp,
        tiers=tiers,
    )


class BattlePassEngine:
    def __init__(
        self,
        tracker: SeasonProgressTracker,
        ledger: RewardLedger,
        store: SeasonStore,
        balances: BalanceStore,
    ) -> None:
        self.tracker = tracker
        self.ledger = ledger
        self.store = store
        self.balances = balances

    async def view(self, player_id: str, season: SeasonDefinition) -> BattlePassView:
        progress = await self.store.get_progress(player_id, season.id)
        purchase = await self.store.get_pass_purchase(player_id, season.id)
        grants = await self.store.list_grants(player_id, season.id)
        return build_battle_pass_view(season.battle_pass, progress, purchase, grants)

    async def purchase(self, player_id: str) -> OperationResult:
        """Debit the premium price and record the purchase as one unit."""
        season = self.tracker.current_season()
        if season is None:
            return OperationResult(success=False, error=SeasonError.SEASON_NOT_FOUND)
        config = season.battle_pass
        if not config.enabled:
            return OperationResult(success=False, error=SeasonError.BATTLE_PASS_DISABLED)

        existing = await self.store.get_pass_purchase(player_id, season.id)
        if existing is not None and existing.premium:
            return OperationResult(success=False, error=SeasonError.ALREADY_PREMIUM)

        price = max(0, config.premium_price_stars)
        try:
            async with self.store.atomic():
                if price > 0:
                    await self.balances.adjust_stars(player_id, -price)
                recorded = await self.store.record_pass_purchase(PassPurchase(
                    player_id=player_id,
                    season_id=season.id,
                    premium=True,
                    price_paid=price,
                    purchased_at=self.tracker.clock(),
                ))
                if not recorded:
                    raise _PurchaseConflict
        except InsufficientStarsError:
            return OperationResult(success=False, error=SeasonError.INSUFFICIENT_STARS)
        except _PurchaseConflict:
            return OperationResult(success=False, error=SeasonError.ALREADY_PREMIUM)

        logger.info("battle_pass_purchased", player_id=player_id, season_id=season.id, price=price)
        return OperationResult(success=True)

    async def claim(self, player_id: str, tier: object, track: str) -> ClaimResult:
        """Claim one tier/track reward; each validation failure is a result code."""
        season = self.tracker.current_season()
        if season is None:
            return ClaimResult(success=False, error=SeasonError.SEASON_NOT_FOUND)

        normalized_track = track.strip().lower() if isinstance(track, str) else ""
        if normalized_track not in TRACKS:
            return ClaimResult(success=False, error=SeasonError.INVALID_TRACK)
        if isinstance(tier, bool) or not isinstance(tier, int) or tier <= 0:
            return ClaimResult(success=False, error=SeasonError.INVALID_TIER)

        config = season.battle_pass
        if not config.enabled:
            return ClaimResult(success=False, error=SeasonError.BATTLE_PASS_DISABLED)
        if tier > config.tiers:
            return ClaimResult(success=False, error=SeasonError.TIER_OUT_OF_RANGE)

        progress = await self.store.get_progress(player_id, season.id)
        season_xp = progress.season_xp if progress else 0
        if season_xp < required_xp_for_tier(config, tier):
            return ClaimResult(success=False, error=SeasonError.TIER_LOCKED)

        if normalized_track == TRACK_PREMIUM:
            purchase = await self.store.get_pass_purchase(player_id, season.id)
            if purchase is None or not purchase.premium:
                return ClaimResult(success=False, error=SeasonError.PREMIUM_REQUIRED)

        tier_rewards = config.rewards_for(tier)
        rewards = []
        if tier_rewards is not None:
            rewards = tier_rewards.premium if normalized_track == TRACK_PREMIUM else tier_rewards.free
        if not rewards:
            return ClaimResult(success=False, error=SeasonError.NO_REWARDS_DEFINED)

        outcome = await self.ledger.grant(
            player_id,
            season.id,
            battle_pass_key(normalized_track, tier),
            reward_type=REWARD_TYPE_BATTLE_PASS,
            payload=build_reward_payload(rewards),
            tier=f"{normalized_track}:{tier}",
        )
        if not outcome.success or outcome.grant is None:
            return ClaimResult(success=False, error=outcome.error)

        logger.info(
            "battle_pass_reward_claimed",
            player_id=player_id, season_id=season.id, tier=tier, track=normalized_track,
        )
        return ClaimResult(success=True, reward=grant_view(outcome.grant))
