"""PostgreSQL fixtures. Tests in this package skip when the database is unreachable."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from idle_season.config import get_settings
from idle_season.db import models  # noqa: F401
from idle_season.db.base import Base

TABLES = ["season_events", "season_pass_purchases", "season_rewards", "season_progress", "progress"]


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Session on a clean schema; skips the test without PostgreSQL."""
    engine = create_async_engine(get_settings().database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            await conn.execute(text(f"TRUNCATE TABLE {', '.join(TABLES)} CASCADE"))  # noqa: S608
    except Exception as exc:  # noqa: BLE001
        await engine.dispose()
        pytest.skip(f"PostgreSQL unavailable: {exc}")

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()
