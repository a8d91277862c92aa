"""Season sub-event tests."""

import pytest

from idle_season.season.schemas import SeasonError
from tests.conftest import AFTER_END, SEASON_ID


class TestParticipate:
    @pytest.mark.asyncio
    async def test_active_event(self, service, store):
        result = await service.participate_in_event("alice", "spark_week")

        assert result.success is True
        assert store.events[("alice", SEASON_ID, "spark_week")].participated is True

    @pytest.mark.asyncio
    async def test_participating_twice_is_fine(self, service):
        await service.participate_in_event("alice", "spark_week")
        result = await service.participate_in_event("alice", "spark_week")
        assert result.success is True

    @pytest.mark.asyncio
    async def test_unknown_event(self, service):
        result = await service.participate_in_event("alice", "nope")
        assert result.error == SeasonError.EVENT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_event_outside_window(self, service):
        result = await service.participate_in_event("alice", "finale")
        assert result.error == SeasonError.EVENT_NOT_ACTIVE

    @pytest.mark.asyncio
    async def test_season_ended(self, service, clock):
        clock.now = AFTER_END
        result = await service.participate_in_event("alice", "spark_week")
        assert result.error == SeasonError.SEASON_ENDED


class TestClaimReward:
    @pytest.mark.asyncio
    async def test_claim_after_participating(self, service, store):
        await service.participate_in_event("alice", "spark_week")
        result = await service.claim_event_reward("alice", "spark_week")

        assert result.success is True
        assert result.reward.reward_key == "event:spark_week"
        assert result.reward.rewards["cosmetics"] == ["spark_badge"]
        assert store.balances["alice"].energy == 500
        assert store.events[("alice", SEASON_ID, "spark_week")].reward_claimed is True

    @pytest.mark.asyncio
    async def test_failed_flag_write_rolls_back_grant(self, service, store):
        await service.participate_in_event("alice", "spark_week")
        store.failing_event_marks.add("spark_week")

        with pytest.raises(RuntimeError):
            await service.claim_event_reward("alice", "spark_week")

        assert ("alice", SEASON_ID, "event:spark_week") not in store.grants
        assert store.balances["alice"].energy == 0

        store.failing_event_marks.clear()
        result = await service.claim_event_reward("alice", "spark_week")
        assert result.success is True
        assert store.events[("alice", SEASON_ID, "spark_week")].reward_claimed is True
        assert store.balances["alice"].energy == 500

    @pytest.mark.asyncio
    async def test_claim_twice(self, service, store):
        await service.participate_in_event("alice", "spark_week")
        await service.claim_event_reward("alice", "spark_week")
        result = await service.claim_event_reward("alice", "spark_week")

        assert result.error == SeasonError.REWARD_ALREADY_CLAIMED
        assert store.balances["alice"].energy == 500

    @pytest.mark.asyncio
    async def test_claim_after_season_end(self, service, clock):
        await service.participate_in_event("alice", "spark_week")
        clock.now = AFTER_END
        result = await service.claim_event_reward("alice", "spark_week")
        assert result.success is True

    @pytest.mark.asyncio
    async def test_not_participated(self, service):
        result = await service.claim_event_reward("alice", "spark_week")
        assert result.error == SeasonError.NOT_PARTICIPATED

    @pytest.mark.asyncio
    async def test_no_rewards_defined(self, service):
        await service.participate_in_event("alice", "quiet_week")
        result = await service.claim_event_reward("alice", "quiet_week")
        assert result.error == SeasonError.NO_REWARDS_DEFINED

    @pytest.mark.asyncio
    async def test_unknown_event(self, service):
        result = await service.claim_event_reward("alice", "nope")
        assert result.error == SeasonError.EVENT_NOT_FOUND
