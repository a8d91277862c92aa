"""Pure reward helpers: payload folding, reward keys, rank tiers, rule lookup."""

from __future__ import annotations

from collections.abc import Iterable

from idle_season.season.content import LeaderboardRewardRule, RewardDescriptor
from idle_season.season.schemas import RewardGrantView, RewardPayload
from idle_season.season.store import RewardGrant

LEADERBOARD_KEY = "leaderboard"

REWARD_TYPE_LEADERBOARD = "leaderboard"
REWARD_TYPE_BATTLE_PASS = "battle_pass"
REWARD_TYPE_EVENT = "event"

TRACK_FREE = "free"
TRACK_PREMIUM = "premium"
TRACKS = (TRACK_FREE, TRACK_PREMIUM)


def battle_pass_key(track: str, tier: int) -> str:
    """``battle_pass:free:3``: unique per season for every tier and track."""
    return f"{REWARD_TYPE_BATTLE_PASS}:{track}:{tier}"


def event_key(event_id: str) -> str:
    return f"{REWARD_TYPE_EVENT}:{event_id}"


def build_reward_payload(rewards: Iterable[RewardDescriptor]) -> RewardPayload:
    """Fold reward lines into ``{energy, stars, cosmetics}``."""
    payload = RewardPayload()
    for reward in rewards:
        if reward.type == "cosmetic" and reward.item_id:
            payload.cosmetics.append(reward.item_id)
        elif reward.type == "energy" and reward.amount and reward.amount > 0:
            payload.energy += reward.amount
        elif reward.type == "stars" and reward.amount and reward.amount > 0:
            payload.stars += reward.amount
    return payload


def reward_tier_for_rank(rank: int) -> str:
    """Tier label for a final leaderboard rank.

    1 → gold, 2 → silver, 3 → bronze, ≤10 → top10, ≤50 → top50,
    ≤100 → top100, anything else → participant.
    """
    if rank == 1:
        return "gold"
    elif rank == 2:
        return "silver"
    elif rank == 3:
        return "bronze"
    elif rank <= 10:
        return "top10"
    elif rank <= 50:
        return "top50"
    elif rank <= 100:
        return "top100"
    return "participant"


def find_leaderboard_reward(
    rules: Iterable[LeaderboardRewardRule], rank: int,
) -> LeaderboardRewardRule | None:
    """Exact rank match wins over ranges; otherwise the first range containing ``rank``."""
    rules = list(rules)
    for rule in rules:
        if rule.rank is not None and rule.rank == rank:
            return rule
    for rule in rules:
        if rule.rank_range is not None:
            low, high = rule.rank_range
            if low <= rank <= high:
                return rule
    return None


def grant_view(grant: RewardGrant) -> RewardGrantView:
    return RewardGrantView(
        reward_key=grant.reward_key,
        reward_type=grant.reward_type,
        reward_tier=grant.reward_tier,
        final_rank=grant.final_rank,
        rewards=dict(grant.reward_payload),
        claimed=grant.claimed,
        claimed_at=grant.claimed_at,
    )
