"""Player-facing season operations.

Wires the tracker, ledger, battle pass, distributor and event service over a
single pair of stores. The caller owns the session behind the stores and
commits after each operation.
"""

from __future__ import annotations

from redis.asyncio import Redis

from idle_season.config import Settings, get_settings
from idle_season.season.battle_pass import BattlePassEngine
from idle_season.season.content import SeasonDefinition, get_season
from idle_season.season.distributor import LeaderboardRewardDistributor
from idle_season.season.events import SeasonEventService
from idle_season.season.ledger import RewardLedger
from idle_season.season.rewards import grant_view
from idle_season.season.schemas import (
    ClaimResult,
    DistributionSummary,
    LeaderboardResult,
    OperationResult,
    RankRefreshSummary,
    SeasonError,
    SeasonEventView,
    SeasonProgressView,
)
from idle_season.season.store import BalanceStore, SeasonStore
from idle_season.season.tracker import Clock, SeasonProgressTracker, SeasonSource, utc_now


class SeasonService:
    def __init__(
        self,
        store: SeasonStore,
        balances: BalanceStore,
        *,
        redis: Redis | None = None,
        season_source: SeasonSource = get_season,
        clock: Clock = utc_now,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.tracker = SeasonProgressTracker(store, season_source, clock)
        self.ledger = RewardLedger(store, balances, redis=redis, clock=clock)
        self.battle_pass = BattlePassEngine(self.tracker, self.ledger, store, balances)
        self.distributor = LeaderboardRewardDistributor(
            self.tracker, self.ledger, store, rank_window=self.settings.rank_refresh_window,
        )
        self.events = SeasonEventService(self.tracker, self.ledger, store)

    # ── Gameplay hooks ──

    async def record_experience(self, player_id: str, amount: int) -> None:
        await self.tracker.record_experience(player_id, amount)

    async def record_production(self, player_id: str, amount: int) -> None:
        await self.tracker.record_production(player_id, amount)

    # ── Reads ──

    async def get_season_progress(self, player_id: str) -> SeasonProgressView | None:
        """Full season view for one player; ``None`` when no season is configured."""
        season = self.tracker.current_season()
        if season is None:
            return None

        progress = await self.store.get_progress(player_id, season.id)
        grants = await self.store.list_grants(player_id, season.id)
        events = await self._event_views(player_id, season)
        battle_pass = await self.battle_pass.view(player_id, season)

        return SeasonProgressView(
            season_id=season.id,
            season_name=season.name,
            season_number=season.number,
            season_xp=progress.season_xp if progress else 0,
            season_energy_produced=progress.season_energy_produced if progress else 0,
            leaderboard_rank=progress.leaderboard_rank if progress else None,
            start_date=season.dates.start if season.dates else None,
            end_date=season.dates.end if season.dates else None,
            is_active=self.tracker.is_season_active(season),
            rewards=[grant_view(g) for g in grants],
            events=events,
            battle_pass=battle_pass,
        )

    async def _event_views(self, player_id: str, season: SeasonDefinition) -> list[SeasonEventView]:
        now = self.tracker.clock()
        views = []
        for event in season.events:
            record = await self.store.get_event_participation(player_id, season.id, event.id)
            views.append(SeasonEventView(
                event_id=event.id,
                name=event.name,
                description=event.description,
                start_date=event.start,
                end_date=event.end,
                is_active=event.is_active(now),
                participated=record.participated if record else False,
                reward_claimed=record.reward_claimed if record else False,
                rewards=[r.model_dump(exclude_none=True) for r in event.rewards],
                multipliers=event.multipliers,
            ))
        return views

    async def get_leaderboard(self, limit: int | None = None) -> LeaderboardResult:
        season = self.tracker.current_season()
        if season is None:
            return LeaderboardResult(success=False, error=SeasonError.SEASON_NOT_FOUND)
        limit = self.settings.leaderboard_default_limit if limit is None else limit
        if limit < 1 or limit > self.settings.leaderboard_max_limit:
            return LeaderboardResult(success=False, error=SeasonError.INVALID_LIMIT)
        entries = await self.tracker.live_leaderboard(season.id, limit)
        return LeaderboardResult(success=True, entries=entries, total=len(entries))

    # ── Claims & purchases ──

    async def claim_leaderboard_reward(self, player_id: str) -> ClaimResult:
        return await self.distributor.claim_leaderboard_reward(player_id)

    async def participate_in_event(self, player_id: str, event_id: str) -> OperationResult:
        return await self.events.participate(player_id, event_id)

    async def claim_event_reward(self, player_id: str, event_id: str) -> ClaimResult:
        return await self.events.claim_reward(player_id, event_id)

    async def purchase_battle_pass(self, player_id: str) -> OperationResult:
        return await self.battle_pass.purchase(player_id)

    async def claim_battle_pass_reward(self, player_id: str, tier: object, track: str) -> ClaimResult:
        return await self.battle_pass.claim(player_id, tier, track)

    # ── Operator commands ──

    async def refresh_leaderboard_ranks(self) -> RankRefreshSummary:
        season = self.tracker.current_season()
        if season is None:
            return RankRefreshSummary(skipped=True, reason=SeasonError.SEASON_NOT_FOUND)
        # Cover every rewarded rank even past the configured window
        window = max(self.settings.rank_refresh_window, season.highest_rewarded_rank())
        ranked = await self.tracker.refresh_stored_ranks(season.id, window)
        return RankRefreshSummary(season_id=season.id, ranked=ranked)

    async def distribute_leaderboard_rewards(self, force: bool = False) -> DistributionSummary:
        return await self.distributor.distribute(force=force)
