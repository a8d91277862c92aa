"""Season content definitions.

The season file is authored as YAML (JSON is accepted too, being a subset)
and loaded once per process. Models are frozen: a season never changes while
it runs.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

import structlog
import yaml
from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from idle_season.config import get_settings

logger = structlog.get_logger()


def _date_to_datetime(value: Any) -> Any:
    # YAML turns bare ``2025-03-01`` into a date
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def _assume_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, BeforeValidator(_date_to_datetime), AfterValidator(_assume_utc)]


class RewardDescriptor(BaseModel):
    """One reward line, e.g. ``{type: energy, amount: 1000}`` or ``{type: cosmetic, item_id: hat}``."""

    model_config = ConfigDict(frozen=True)

    type: str
    amount: int | None = None
    item_id: str | None = None
    condition: str | None = None


class DateWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: UtcDatetime
    end: UtcDatetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


class SeasonEventDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    start: UtcDatetime
    end: UtcDatetime
    rewards: list[RewardDescriptor] = Field(default_factory=list)
    multipliers: dict[str, float] | None = None

    def is_active(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


class LeaderboardRewardRule(BaseModel):
    """Reward for an exact ``rank`` or an inclusive ``rank_range``."""

    model_config = ConfigDict(frozen=True)

    rank: int | None = None
    rank_range: tuple[int, int] | None = None
    rewards: list[RewardDescriptor] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_target(self) -> LeaderboardRewardRule:
        if self.rank is None and self.rank_range is None:
            raise ValueError("leaderboard reward needs rank or rank_range")
        if self.rank_range is not None and self.rank_range[0] > self.rank_range[1]:
            raise ValueError("rank_range must be [min, max]")
        return self

    def highest_rank(self) -> int:
        if self.rank_range is not None:
            return max(self.rank or 0, self.rank_range[1])
        return self.rank or 0


class BattlePassTierRewards(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier: int
    free: list[RewardDescriptor] = Field(default_factory=list)
    premium: list[RewardDescriptor] = Field(default_factory=list)


class BattlePassConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    tiers: int = 0
    xp_per_tier: int = 0
    premium_price_stars: int = 0
    rewards: list[BattlePassTierRewards] = Field(default_factory=list)

    def rewards_for(self, tier: int) -> BattlePassTierRewards | None:
        return next((r for r in self.rewards if r.tier == tier), None)


class SeasonDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    number: int
    name: str
    description: str = ""
    dates: DateWindow | None = None
    theme: str | None = None
    multipliers: dict[str, float] | None = None
    events: list[SeasonEventDefinition] = Field(default_factory=list)
    leaderboard_rewards: list[LeaderboardRewardRule] = Field(default_factory=list)
    battle_pass: BattlePassConfig = Field(default_factory=BattlePassConfig)

    def find_event(self, event_id: str) -> SeasonEventDefinition | None:
        return next((e for e in self.events if e.id == event_id), None)

    def highest_rewarded_rank(self) -> int:
        """Largest rank covered by the leaderboard reward table (0 when empty)."""
        return max((rule.highest_rank() for rule in self.leaderboard_rewards), default=0)


def parse_season_definition(data: dict[str, Any]) -> SeasonDefinition:
    """Accept both the bare season mapping and the ``{season: {...}}`` file layout."""
    if "season" in data and isinstance(data["season"], dict):
        data = data["season"]
    return SeasonDefinition.model_validate(data)


def load_season_definition(path: str | Path) -> SeasonDefinition:
    """Load and validate a season content file."""
    raw = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Season content at {path} is not a mapping")
    return parse_season_definition(data)


@lru_cache
def get_season() -> SeasonDefinition | None:
    """Season configured in settings, loaded once. ``None`` when no file is deployed."""
    path = Path(get_settings().season_content_path)
    if not path.exists():
        logger.warning("season_content_missing", path=str(path))
        return None
    season = load_season_definition(path)
    logger.info("season_content_loaded", season_id=season.id, number=season.number)
    return season
