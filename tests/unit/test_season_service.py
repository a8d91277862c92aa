"""SeasonService read-model and leaderboard tests."""

import pytest

from idle_season.season.schemas import SeasonError
from idle_season.season.service import SeasonService
from tests.conftest import SEASON_ID


class TestGetSeasonProgress:
    @pytest.mark.asyncio
    async def test_fresh_player_reads_zeros_without_writing(self, service, store):
        view = await service.get_season_progress("alice")

        assert view.season_id == SEASON_ID
        assert view.season_number == 1
        assert view.season_xp == 0
        assert view.season_energy_produced == 0
        assert view.leaderboard_rank is None
        assert view.is_active is True
        assert view.rewards == []
        assert store.progress == {}

    @pytest.mark.asyncio
    async def test_reflects_counters_and_grants(self, service):
        await service.record_experience("alice", 1200)
        await service.record_production("alice", 800)
        await service.claim_battle_pass_reward("alice", 2, "free")

        view = await service.get_season_progress("alice")

        assert view.season_xp == 1200
        assert view.season_energy_produced == 800
        assert [r.reward_key for r in view.rewards] == ["battle_pass:free:2"]
        assert view.battle_pass.current_tier == 2
        assert view.battle_pass.tiers[1].free_claimed is True

    @pytest.mark.asyncio
    async def test_event_views(self, service):
        await service.participate_in_event("alice", "spark_week")
        view = await service.get_season_progress("alice")
        events = {e.event_id: e for e in view.events}

        assert events["spark_week"].is_active is True
        assert events["spark_week"].participated is True
        assert events["spark_week"].multipliers == {"energy": 2.0}
        assert events["finale"].is_active is False
        assert events["finale"].participated is False

    @pytest.mark.asyncio
    async def test_no_season(self, store, clock, settings):
        service = SeasonService(store, store, season_source=lambda: None, clock=clock, settings=settings)
        assert await service.get_season_progress("alice") is None


class TestGetLeaderboard:
    @pytest.mark.asyncio
    async def test_default_limit(self, service, store):
        for idx in range(15):
            store.set_progress(f"p{idx:02d}", SEASON_ID, energy=idx)

        result = await service.get_leaderboard()

        assert result.success is True
        assert result.total == 10
        assert result.entries[0].player_id == "p14"
        assert result.entries[0].rank == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1, 51])
    async def test_invalid_limit(self, service, limit):
        result = await service.get_leaderboard(limit)
        assert result.success is False
        assert result.error == SeasonError.INVALID_LIMIT

    @pytest.mark.asyncio
    async def test_no_season(self, store, clock, settings):
        service = SeasonService(store, store, season_source=lambda: None, clock=clock, settings=settings)
        result = await service.get_leaderboard()
        assert result.error == SeasonError.SEASON_NOT_FOUND


class TestRefreshLeaderboardRanks:
    @pytest.mark.asyncio
    async def test_summary(self, service, store):
        store.set_progress("alice", SEASON_ID, energy=10)
        store.set_progress("bob", SEASON_ID, energy=20)

        summary = await service.refresh_leaderboard_ranks()

        assert summary.season_id == SEASON_ID
        assert summary.ranked == 2
        assert store.progress[("bob", SEASON_ID)].leaderboard_rank == 1

    @pytest.mark.asyncio
    async def test_no_season(self, store, clock, settings):
        service = SeasonService(store, store, season_source=lambda: None, clock=clock, settings=settings)
        summary = await service.refresh_leaderboard_ranks()
        assert summary.skipped is True
        assert summary.reason == SeasonError.SEASON_NOT_FOUND
