"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from idle_season.config import Settings
from idle_season.season.content import SeasonDefinition, parse_season_definition
from idle_season.season.service import SeasonService
from tests.fakes import FakeClock, FakeRedis, InMemoryStore

SEASON_ID = "season_001"

# Mid-season, inside the spark_week sub-event
ACTIVE_NOW = datetime(2026, 1, 12, 12, 0, tzinfo=timezone.utc)
BEFORE_START = datetime(2025, 12, 20, tzinfo=timezone.utc)
AFTER_END = datetime(2026, 4, 2, tzinfo=timezone.utc)


def season_data() -> dict[str, Any]:
    """Season file contents as loaded from YAML."""
    return {
        "season": {
            "id": SEASON_ID,
            "number": 1,
            "name": "Season of Sparks",
            "description": "The first competitive season.",
            "dates": {"start": "2026-01-01T00:00:00Z", "end": "2026-03-31T23:59:59Z"},
            "theme": "sparks",
            "multipliers": {"energy": 1.1},
            "events": [
                {
                    "id": "spark_week",
                    "name": "Spark Week",
                    "description": "Double sparks for a week.",
                    "start": "2026-01-10T00:00:00Z",
                    "end": "2026-01-17T00:00:00Z",
                    "rewards": [
                        {"type": "energy", "amount": 500},
                        {"type": "cosmetic", "item_id": "spark_badge"},
                    ],
                    "multipliers": {"energy": 2.0},
                },
                {
                    "id": "quiet_week",
                    "name": "Quiet Week",
                    "start": "2026-01-10T00:00:00Z",
                    "end": "2026-01-17T00:00:00Z",
                    "rewards": [],
                },
                {
                    "id": "finale",
                    "name": "Finale",
                    "start": "2026-03-20T00:00:00Z",
                    "end": "2026-03-31T00:00:00Z",
                    "rewards": [{"type": "stars", "amount": 30}],
                },
            ],
            "leaderboard_rewards": [
                {"rank": 1, "rewards": [{"type": "energy", "amount": 1000}]},
                {"rank": 2, "rewards": [{"type": "energy", "amount": 500}, {"type": "stars", "amount": 25}]},
                {"rank": 3, "rewards": [{"type": "cosmetic", "item_id": "bronze_frame"}]},
                {"rank_range": [4, 10], "rewards": [{"type": "energy", "amount": 100}]},
            ],
            "battle_pass": {
                "enabled": True,
                "tiers": 5,
                "xp_per_tier": 1000,
                "premium_price_stars": 300,
                "rewards": [
                    {
                        "tier": 1,
                        "free": [{"type": "energy", "amount": 100}],
                        "premium": [{"type": "stars", "amount": 10}],
                    },
                    {
                        "tier": 2,
                        "free": [{"type": "energy", "amount": 200}],
                        "premium": [{"type": "cosmetic", "item_id": "pass_hat"}],
                    },
                    {"tier": 3, "free": [], "premium": [{"type": "energy", "amount": 500}]},
                    {"tier": 5, "free": [{"type": "energy", "amount": 1000}]},
                ],
            },
        }
    }


def build_season(**overrides: Any) -> SeasonDefinition:
    data = season_data()["season"]
    data.update(overrides)
    return parse_season_definition(data)


@pytest.fixture
def season() -> SeasonDefinition:
    return build_season()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(ACTIVE_NOW)


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore()
    store.add_player("alice", energy=0, stars=500)
    store.add_player("bob", energy=0, stars=100)
    store.add_player("carol", energy=0, stars=0)
    return store


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def settings() -> Settings:
    return Settings(leaderboard_default_limit=10, leaderboard_max_limit=50, rank_refresh_window=100)


@pytest.fixture
def service(store, season, clock, redis, settings) -> SeasonService:
    return SeasonService(
        store,
        store,
        redis=redis,
        season_source=lambda: season,
        clock=clock,
        settings=settings,
    )
