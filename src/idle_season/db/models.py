"""ORM models for season progression and reward grants.

Table layout matches alembic/versions/001_season_tables.py. The ``progress``
table belongs to the core game backend; it is mapped here only so the SQL
balance adapter can apply reward payloads.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from idle_season.db.base import Base


# ---------------------------------------------------------------------------
# Player balances (owned by the core backend)
# ---------------------------------------------------------------------------


class PlayerProgress(Base):
    """Denormalized player balances, one row per player."""

    __tablename__ = "progress"

    player_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    energy: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    stars_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    xp: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("NOW()"))


# ---------------------------------------------------------------------------
# Season progress
# ---------------------------------------------------------------------------


class SeasonProgressRow(Base):
    """Per-player per-season counters and the stored leaderboard rank."""

    __tablename__ = "season_progress"
    __table_args__ = (
        UniqueConstraint("player_id", "season_id", name="season_progress_player_season_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    season_id: Mapped[str] = mapped_column(String(64), nullable=False)
    season_xp: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    season_energy_produced: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    leaderboard_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    claimed_leaderboard_reward: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("NOW()"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("NOW()"))


# ---------------------------------------------------------------------------
# Reward grants
# ---------------------------------------------------------------------------


class SeasonRewardGrantRow(Base):
    """One grantable reward per (player, season, reward_key). Claimed at most once."""

    __tablename__ = "season_rewards"
    __table_args__ = (
        UniqueConstraint("player_id", "season_id", "reward_key", name="season_rewards_player_season_key_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    season_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reward_key: Mapped[str] = mapped_column(String(64), nullable=False)
    reward_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reward_tier: Mapped[str | None] = mapped_column(String(32), nullable=True)
    final_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reward_payload: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("NOW()"))


class SeasonPassPurchaseRow(Base):
    """Premium battle pass purchase. Written once, never updated."""

    __tablename__ = "season_pass_purchases"
    __table_args__ = (
        UniqueConstraint("player_id", "season_id", name="season_pass_purchases_player_season_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String(64), nullable=False)
    season_id: Mapped[str] = mapped_column(String(64), nullable=False)
    premium: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    price_paid: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    purchased_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("NOW()"))


class SeasonEventParticipationRow(Base):
    """Sub-event participation and reward-claimed flag."""

    __tablename__ = "season_events"
    __table_args__ = (
        UniqueConstraint("player_id", "season_id", "event_id", name="season_events_player_season_event_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String(64), nullable=False)
    season_id: Mapped[str] = mapped_column(String(64), nullable=False)
    event_id: Mapped[str] = mapped_column(String(64), nullable=False)
    participated: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    reward_claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("NOW()"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=text("NOW()"))
