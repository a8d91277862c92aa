"""Pydantic result and read models returned to the caller layer.

Expected domain failures come back as ``success=False`` plus one of the
``SeasonError`` codes; they are never raised.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SeasonError:
    SEASON_NOT_FOUND = "season_not_found"
    SEASON_ACTIVE = "season_active"
    SEASON_NOT_STARTED = "season_not_started"
    SEASON_ENDED = "season_ended"
    NOT_RANKED = "not_ranked"
    NO_REWARD_FOR_RANK = "no_reward_for_rank"
    NO_REWARDS_CONFIGURED = "no_rewards_configured"
    REWARD_ALREADY_CLAIMED = "reward_already_claimed"
    INVALID_TIER = "invalid_tier"
    INVALID_TRACK = "invalid_track"
    TIER_OUT_OF_RANGE = "tier_out_of_range"
    TIER_LOCKED = "tier_locked"
    PREMIUM_REQUIRED = "premium_required"
    NO_REWARDS_DEFINED = "no_rewards_defined"
    BATTLE_PASS_DISABLED = "battle_pass_disabled"
    ALREADY_PREMIUM = "already_premium"
    INSUFFICIENT_STARS = "insufficient_stars"
    EVENT_NOT_FOUND = "event_not_found"
    EVENT_NOT_ACTIVE = "event_not_active"
    NOT_PARTICIPATED = "not_participated"
    INVALID_LIMIT = "invalid_limit"


# ── Rewards ──


class RewardPayload(BaseModel):
    energy: int = 0
    stars: int = 0
    cosmetics: list[str] = Field(default_factory=list)


class RewardGrantView(BaseModel):
    reward_key: str
    reward_type: str
    reward_tier: str | None = None
    final_rank: int | None = None
    rewards: dict[str, Any] = Field(default_factory=dict)
    claimed: bool
    claimed_at: datetime | None = None


class OperationResult(BaseModel):
    success: bool
    error: str | None = None


class ClaimResult(OperationResult):
    reward: RewardGrantView | None = None


# ── Leaderboard ──


class LeaderboardEntry(BaseModel):
    player_id: str
    rank: int
    season_energy_produced: int
    season_xp: int


class LeaderboardResult(OperationResult):
    entries: list[LeaderboardEntry] = Field(default_factory=list)
    total: int = 0


class DistributionSummary(BaseModel):
    skipped: bool = False
    reason: str | None = None
    season_id: str | None = None
    candidates: int = 0
    distributed: int = 0
    already_claimed: int = 0
    no_rule: int = 0
    failed: int = 0


class RankRefreshSummary(BaseModel):
    skipped: bool = False
    reason: str | None = None
    season_id: str | None = None
    ranked: int = 0


# ── Battle pass ──


class BattlePassRewardView(BaseModel):
    type: str
    amount: int | None = None
    item_id: str | None = None


class BattlePassTierView(BaseModel):
    tier: int
    required_xp: int
    free_rewards: list[BattlePassRewardView]
    premium_rewards: list[BattlePassRewardView]
    free_claimed: bool
    premium_claimed: bool
    free_claimable: bool
    premium_claimable: bool


class BattlePassView(BaseModel):
    enabled: bool
    premium_purchased: bool
    premium_price_stars: int
    total_tiers: int
    xp_per_tier: int
    current_tier: int
    xp_into_current_tier: int
    xp_to_next_tier: int | None
    next_tier_xp: int | None
    tiers: list[BattlePassTierView] = Field(default_factory=list)


# ── Season progress ──


class SeasonEventView(BaseModel):
    event_id: str
    name: str
    description: str
    start_date: datetime
    end_date: datetime
    is_active: bool
    participated: bool
    reward_claimed: bool
    rewards: list[dict[str, Any]] = Field(default_factory=list)
    multipliers: dict[str, float] | None = None


class SeasonProgressView(BaseModel):
    season_id: str
    season_name: str
    season_number: int
    season_xp: int
    season_energy_produced: int
    leaderboard_rank: int | None
    start_date: datetime | None
    end_date: datetime | None
    is_active: bool
    rewards: list[RewardGrantView] = Field(default_factory=list)
    events: list[SeasonEventView] = Field(default_factory=list)
    battle_pass: BattlePassView | None = None
