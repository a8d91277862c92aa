"""Reward ledger tests: once-only grants and payload application."""

import asyncio
import json

import pytest

from idle_season.season.ledger import GRANT_CHANNEL, RewardLedger
from idle_season.season.rewards import LEADERBOARD_KEY
from idle_season.season.schemas import RewardPayload, SeasonError
from tests.conftest import SEASON_ID
from tests.fakes import FakeRedis


@pytest.fixture
def ledger(store, clock, redis) -> RewardLedger:
    return RewardLedger(store, store, redis=redis, clock=clock)


async def _grant(ledger: RewardLedger, player_id: str = "alice", key: str = "battle_pass:free:1", **payload):
    return await ledger.grant(
        player_id,
        SEASON_ID,
        key,
        reward_type="battle_pass",
        payload=RewardPayload(**payload),
        tier="free:1",
    )


class TestGrant:
    @pytest.mark.asyncio
    async def test_applies_payload(self, ledger, store, clock):
        outcome = await _grant(ledger, energy=100, stars=5, cosmetics=["hat"])

        assert outcome.success is True
        assert outcome.grant.claimed is True
        assert outcome.grant.claimed_at == clock.now
        assert outcome.grant.reward_payload == {"energy": 100, "stars": 5, "cosmetics": ["hat"]}
        assert store.balances["alice"].energy == 100
        assert store.balances["alice"].stars_balance == 505

    @pytest.mark.asyncio
    async def test_second_grant_is_noop_failure(self, ledger, store):
        await _grant(ledger, energy=100)
        outcome = await _grant(ledger, energy=100)

        assert outcome.success is False
        assert outcome.error == SeasonError.REWARD_ALREADY_CLAIMED
        assert store.balances["alice"].energy == 100

    @pytest.mark.asyncio
    async def test_concurrent_grants_apply_once(self, ledger, store):
        outcomes = await asyncio.gather(*[_grant(ledger, energy=250) for _ in range(5)])

        assert sum(1 for o in outcomes if o.success) == 1
        assert all(o.error == SeasonError.REWARD_ALREADY_CLAIMED for o in outcomes if not o.success)
        assert store.balances["alice"].energy == 250

    @pytest.mark.asyncio
    async def test_distinct_keys_are_independent(self, ledger, store):
        first = await _grant(ledger, key="battle_pass:free:1", energy=10)
        second = await _grant(ledger, key="battle_pass:premium:1", energy=20)
        assert first.success and second.success
        assert store.balances["alice"].energy == 30

    @pytest.mark.asyncio
    async def test_failed_balance_write_leaves_grant_unclaimed(self, ledger, store):
        store.failing_energy.add("alice")
        with pytest.raises(RuntimeError):
            await _grant(ledger, energy=100, stars=5)

        assert await ledger.is_claimed("alice", SEASON_ID, "battle_pass:free:1") is False
        assert store.balances["alice"].stars_balance == 500

        store.failing_energy.clear()
        outcome = await _grant(ledger, energy=100, stars=5)
        assert outcome.success is True
        assert store.balances["alice"].energy == 100

    @pytest.mark.asyncio
    async def test_leaderboard_key_marks_progress(self, ledger, store, clock):
        store.set_progress("alice", SEASON_ID, energy=10, rank=1)
        await _grant(ledger, key=LEADERBOARD_KEY, energy=1000)

        progress = store.progress[("alice", SEASON_ID)]
        assert progress.claimed_leaderboard_reward is True
        assert progress.claimed_at == clock.now

    @pytest.mark.asyncio
    async def test_other_keys_leave_progress_flag(self, ledger, store):
        store.set_progress("alice", SEASON_ID, energy=10, rank=1)
        await _grant(ledger, energy=10)
        assert store.progress[("alice", SEASON_ID)].claimed_leaderboard_reward is False


class TestPublish:
    @pytest.mark.asyncio
    async def test_publishes_grant(self, ledger, redis):
        await _grant(ledger, energy=10)

        assert len(redis.published) == 1
        channel, message = redis.published[0]
        assert channel == GRANT_CHANNEL
        body = json.loads(message)
        assert body["player_id"] == "alice"
        assert body["reward_key"] == "battle_pass:free:1"

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_fail_grant(self, store, clock):
        ledger = RewardLedger(store, store, redis=FakeRedis(fail=True), clock=clock)
        outcome = await _grant(ledger, energy=10)
        assert outcome.success is True
        assert store.balances["alice"].energy == 10

    @pytest.mark.asyncio
    async def test_no_redis(self, store, clock):
        ledger = RewardLedger(store, store, clock=clock)
        assert (await _grant(ledger, energy=10)).success is True
