"""Season close arq worker: stored-rank snapshots and leaderboard payouts.

Import path for arq CLI: arq idle_season.season.worker.SeasonWorkerSettings

Both jobs are safe to re-run. Each opens its own session and commits once
the run is complete; per-player grants inside ``distribute`` are already
isolated by savepoints.
"""

from __future__ import annotations

import structlog
from arq import cron
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from idle_season.config import get_settings
from idle_season.database import close_db, init_db, open_session
from idle_season.logging_config import bind_job_context, clear_job_context, setup_logging
from idle_season.season.content import get_season
from idle_season.season.schemas import SeasonError
from idle_season.season.service import SeasonService
from idle_season.season.sql_store import SqlBalanceStore, SqlSeasonStore
from idle_season.season.tracker import season_window_state

logger = structlog.get_logger()


async def _get_db_session() -> AsyncSession:
    """Get a database session for the worker."""
    return open_session()


def _build_service(db: AsyncSession, ctx: dict) -> SeasonService:
    return SeasonService(
        SqlSeasonStore(db),
        SqlBalanceStore(db),
        redis=ctx.get("redis"),
        settings=get_settings(),
    )


def _season_id() -> str | None:
    season = get_season()
    return season.id if season else None


async def refresh_season_ranks(ctx: dict) -> dict:
    """Snapshot the current leaderboard ordering into stored ranks."""
    bind_job_context("refresh_season_ranks", _season_id())
    db = await _get_db_session()
    try:
        summary = await _build_service(db, ctx).refresh_leaderboard_ranks()
        await db.commit()
        logger.info("season_ranks_job_done", ranked=summary.ranked, skipped=summary.skipped)
        return summary.model_dump()
    finally:
        await db.close()
        clear_job_context()


async def distribute_season_rewards(ctx: dict, force: bool = False) -> dict:
    """Pay out leaderboard rewards for the closed season."""
    settings = get_settings()
    bind_job_context("distribute_season_rewards", _season_id())
    db = await _get_db_session()
    try:
        service = _build_service(db, ctx)
        season = service.tracker.current_season()
        # Counters are frozen once the season has ended, so the snapshot is stable
        if (
            settings.refresh_ranks_before_distribute
            and season is not None
            and season_window_state(season, service.tracker.clock()) == SeasonError.SEASON_ENDED
        ):
            await service.refresh_leaderboard_ranks()

        summary = await service.distribute_leaderboard_rewards(force=force)
        await db.commit()
        return summary.model_dump()
    finally:
        await db.close()
        clear_job_context()


async def season_startup(ctx: dict) -> None:
    """Initialize logging, DB and Redis on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url, pool_size=settings.db_pool_size)
    ctx["redis"] = Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        max_connections=settings.redis_max_connections,
    )
    logger.info("season_worker_started", environment=settings.environment)


async def season_shutdown(ctx: dict) -> None:
    """Clean up on worker shutdown."""
    redis = ctx.pop("redis", None)
    if redis is not None:
        await redis.aclose()
    await close_db()
    logger.info("season_worker_stopped")


class SeasonWorkerSettings:
    """arq worker settings for season close jobs."""

    functions = [
        refresh_season_ranks,
        distribute_season_rewards,
    ]
    on_startup = season_startup
    on_shutdown = season_shutdown
    cron_jobs = [
        # Hourly snapshot keeps stored ranks close to the live board
        cron(refresh_season_ranks, minute=0),
    ]
    max_jobs = 2
    job_timeout = get_settings().worker_job_timeout_seconds
