"""Season progress tracking and leaderboard ranking.

Two rank views exist and are deliberately kept apart:

- ``live_leaderboard`` reads current counters, for display only;
- ``stored_rank`` reads the snapshot written by ``refresh_stored_ranks``,
  which is what reward eligibility is decided on once a season closes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from idle_season.season.content import SeasonDefinition, get_season
from idle_season.season.schemas import LeaderboardEntry, SeasonError
from idle_season.season.store import SeasonProgress, SeasonStore

logger = structlog.get_logger()

DEFAULT_RANK_WINDOW = 1000

SeasonSource = Callable[[], SeasonDefinition | None]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class InactiveSeason:
    """Why no season currently accepts progress."""

    reason: str
    season: SeasonDefinition | None = None


def season_window_state(season: SeasonDefinition, now: datetime) -> str | None:
    """``None`` while the season runs, else ``season_not_started`` / ``season_ended``."""
    if season.dates is None:
        return None
    if now < season.dates.start:
        return SeasonError.SEASON_NOT_STARTED
    if now > season.dates.end:
        return SeasonError.SEASON_ENDED
    return None


def rank_entries(rows: list[SeasonProgress]) -> list[LeaderboardEntry]:
    """Positional 1-based ranks over rows already in leaderboard order."""
    return [
        LeaderboardEntry(
            player_id=row.player_id,
            rank=position + 1,
            season_energy_produced=row.season_energy_produced,
            season_xp=row.season_xp,
        )
        for position, row in enumerate(rows)
    ]


class SeasonProgressTracker:
    """Accumulates season counters and maintains the rank snapshot."""

    def __init__(
        self,
        store: SeasonStore,
        season_source: SeasonSource = get_season,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.season_source = season_source
        self.clock = clock

    def current_season(self) -> SeasonDefinition | None:
        return self.season_source()

    def is_season_active(self, season: SeasonDefinition) -> bool:
        return season_window_state(season, self.clock()) is None

    def resolve_active_season(self, now: datetime | None = None) -> SeasonDefinition | InactiveSeason:
        """Single gate every mutating entry point consults first."""
        season = self.season_source()
        if season is None:
            return InactiveSeason(SeasonError.SEASON_NOT_FOUND)
        state = season_window_state(season, now or self.clock())
        if state is not None:
            return InactiveSeason(state, season)
        return season

    async def record_experience(self, player_id: str, amount: int) -> SeasonProgress | None:
        """Add season XP. Silently does nothing outside an active season."""
        season = self.resolve_active_season()
        if isinstance(season, InactiveSeason) or amount <= 0:
            return None
        progress = await self.store.increment_progress(player_id, season.id, xp=amount)
        logger.debug("season_xp_recorded", player_id=player_id, season_id=season.id, amount=amount)
        return progress

    async def record_production(self, player_id: str, amount: int) -> SeasonProgress | None:
        """Add season energy production. Silently does nothing outside an active season."""
        season = self.resolve_active_season()
        if isinstance(season, InactiveSeason) or amount <= 0:
            return None
        progress = await self.store.increment_progress(player_id, season.id, energy=amount)
        logger.debug("season_energy_recorded", player_id=player_id, season_id=season.id, amount=amount)
        return progress

    async def live_leaderboard(self, season_id: str, limit: int) -> list[LeaderboardEntry]:
        if limit <= 0:
            return []
        rows = await self.store.leaderboard(season_id, limit)
        return rank_entries(rows)

    async def refresh_stored_ranks(self, season_id: str, window: int = DEFAULT_RANK_WINDOW) -> int:
        """Snapshot the current ordering into each participant's stored rank."""
        rows = await self.store.leaderboard(season_id, window)
        ranks = {row.player_id: position + 1 for position, row in enumerate(rows)}
        if ranks:
            await self.store.write_ranks(season_id, ranks)
        logger.info("season_leaderboard_ranks_updated", season_id=season_id, updated_count=len(ranks))
        return len(ranks)

    async def stored_rank(self, player_id: str, season_id: str) -> int | None:
        progress = await self.store.get_progress(player_id, season_id)
        return progress.leaderboard_rank if progress else None
