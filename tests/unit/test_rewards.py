"""Reward helper tests: payload folding, rank tiers and rule lookup."""

import pytest
from pydantic import ValidationError

from idle_season.season.content import LeaderboardRewardRule, RewardDescriptor
from idle_season.season.rewards import (
    battle_pass_key,
    build_reward_payload,
    event_key,
    find_leaderboard_reward,
    reward_tier_for_rank,
)


def _rule(**kwargs) -> LeaderboardRewardRule:
    return LeaderboardRewardRule.model_validate(kwargs)


class TestBuildRewardPayload:
    def test_folds_all_types(self):
        payload = build_reward_payload([
            RewardDescriptor(type="energy", amount=100),
            RewardDescriptor(type="energy", amount=50),
            RewardDescriptor(type="stars", amount=5),
            RewardDescriptor(type="cosmetic", item_id="hat"),
        ])
        assert payload.energy == 150
        assert payload.stars == 5
        assert payload.cosmetics == ["hat"]

    def test_ignores_non_positive_and_unknown(self):
        payload = build_reward_payload([
            RewardDescriptor(type="energy", amount=-10),
            RewardDescriptor(type="stars"),
            RewardDescriptor(type="cosmetic"),
            RewardDescriptor(type="boost", amount=3),
        ])
        assert payload.model_dump() == {"energy": 0, "stars": 0, "cosmetics": []}


class TestRewardTierForRank:
    @pytest.mark.parametrize(
        ("rank", "tier"),
        [
            (1, "gold"),
            (2, "silver"),
            (3, "bronze"),
            (4, "top10"),
            (10, "top10"),
            (11, "top50"),
            (50, "top50"),
            (51, "top100"),
            (100, "top100"),
            (101, "participant"),
        ],
    )
    def test_tier_labels(self, rank, tier):
        assert reward_tier_for_rank(rank) == tier


class TestFindLeaderboardReward:
    def test_exact_rank_beats_range(self):
        ranged = _rule(rank_range=[1, 10], rewards=[{"type": "energy", "amount": 10}])
        exact = _rule(rank=1, rewards=[{"type": "energy", "amount": 1000}])
        assert find_leaderboard_reward([ranged, exact], 1) is exact

    def test_first_containing_range(self):
        first = _rule(rank_range=[4, 10])
        second = _rule(rank_range=[5, 20])
        assert find_leaderboard_reward([first, second], 6) is first
        assert find_leaderboard_reward([first, second], 15) is second

    def test_no_match(self):
        assert find_leaderboard_reward([_rule(rank=1)], 2) is None

    def test_rule_needs_a_target(self):
        with pytest.raises(ValidationError):
            _rule(rewards=[])

    def test_reversed_range_rejected(self):
        with pytest.raises(ValidationError):
            _rule(rank_range=[10, 4])


class TestRewardKeys:
    def test_battle_pass_keys_are_distinct(self):
        keys = {battle_pass_key(track, tier) for track in ("free", "premium") for tier in range(1, 6)}
        assert len(keys) == 10
        assert battle_pass_key("free", 3) == "battle_pass:free:3"

    def test_event_key(self):
        assert event_key("spark_week") == "event:spark_week"
