"""PostgreSQL-backed stores over a shared AsyncSession.

Statements go through the Core tables rather than ORM instances so that
every read reflects the latest atomic update (no stale identity-map rows).
Counters use ``x = x + :n`` upserts; grant claims use a conditional upsert
on the (player, season, reward_key) unique constraint.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import bindparam, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from idle_season.db.models import (
    PlayerProgress,
    SeasonEventParticipationRow,
    SeasonPassPurchaseRow,
    SeasonProgressRow,
    SeasonRewardGrantRow,
)
from idle_season.season.store import (
    Balances,
    EventParticipation,
    InsufficientStarsError,
    PassPurchase,
    PlayerNotFoundError,
    RewardGrant,
    SeasonProgress,
)

progress_t = SeasonProgressRow.__table__
grants_t = SeasonRewardGrantRow.__table__
purchases_t = SeasonPassPurchaseRow.__table__
events_t = SeasonEventParticipationRow.__table__
balances_t = PlayerProgress.__table__


def _progress(row: Mapping[str, Any]) -> SeasonProgress:
    return SeasonProgress(
        player_id=row["player_id"],
        season_id=row["season_id"],
        season_xp=int(row["season_xp"]),
        season_energy_produced=int(row["season_energy_produced"]),
        leaderboard_rank=row["leaderboard_rank"],
        claimed_leaderboard_reward=row["claimed_leaderboard_reward"],
        claimed_at=row["claimed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _grant(row: Mapping[str, Any]) -> RewardGrant:
    return RewardGrant(
        player_id=row["player_id"],
        season_id=row["season_id"],
        reward_key=row["reward_key"],
        reward_type=row["reward_type"],
        reward_tier=row["reward_tier"],
        final_rank=row["final_rank"],
        reward_payload=dict(row["reward_payload"] or {}),
        claimed=row["claimed"],
        claimed_at=row["claimed_at"],
        created_at=row["created_at"],
    )


def _participation(row: Mapping[str, Any]) -> EventParticipation:
    return EventParticipation(
        player_id=row["player_id"],
        season_id=row["season_id"],
        event_id=row["event_id"],
        participated=row["participated"],
        reward_claimed=row["reward_claimed"],
    )


def _balances(row: Mapping[str, Any]) -> Balances:
    return Balances(
        player_id=row["player_id"],
        energy=int(row["energy"]),
        stars_balance=int(row["stars_balance"]),
        xp=int(row["xp"]),
        level=int(row["level"]),
    )


class SqlSeasonStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """SAVEPOINT inside an open transaction, else a transaction of its own."""
        if self.db.in_transaction():
            async with self.db.begin_nested():
                yield
        else:
            async with self.db.begin():
                yield

    # ── Progress ──

    async def get_progress(self, player_id: str, season_id: str) -> SeasonProgress | None:
        result = await self.db.execute(
            select(progress_t).where(
                progress_t.c.player_id == player_id,
                progress_t.c.season_id == season_id,
            )
        )
        row = result.mappings().first()
        return _progress(row) if row else None

    async def increment_progress(
        self, player_id: str, season_id: str, *, xp: int = 0, energy: int = 0,
    ) -> SeasonProgress:
        stmt = insert(progress_t).values(
            player_id=player_id,
            season_id=season_id,
            season_xp=xp,
            season_energy_produced=energy,
        ).on_conflict_do_update(
            constraint="season_progress_player_season_key",
            set_={
                "season_xp": progress_t.c.season_xp + xp,
                "season_energy_produced": progress_t.c.season_energy_produced + energy,
                "updated_at": func.now(),
            },
        ).returning(*progress_t.c)
        result = await self.db.execute(stmt)
        return _progress(result.mappings().one())

    async def leaderboard(self, season_id: str, limit: int) -> list[SeasonProgress]:
        result = await self.db.execute(
            select(progress_t)
            .where(progress_t.c.season_id == season_id)
            .order_by(
                progress_t.c.season_energy_produced.desc(),
                progress_t.c.season_xp.desc(),
                progress_t.c.player_id.asc(),
            )
            .limit(limit)
        )
        return [_progress(row) for row in result.mappings()]

    async def write_ranks(self, season_id: str, ranks: dict[str, int]) -> None:
        async with self.atomic():
            await self.db.execute(
                update(progress_t)
                .where(
                    progress_t.c.season_id == season_id,
                    progress_t.c.leaderboard_rank.isnot(None),
                )
                .values(leaderboard_rank=None, updated_at=func.now())
            )
            if not ranks:
                return
            stmt = (
                update(progress_t)
                .where(
                    progress_t.c.season_id == bindparam("b_season_id"),
                    progress_t.c.player_id == bindparam("b_player_id"),
                )
                .values(leaderboard_rank=bindparam("b_rank"), updated_at=func.now())
            )
            await self.db.execute(
                stmt,
                [
                    {"b_season_id": season_id, "b_player_id": player_id, "b_rank": rank}
                    for player_id, rank in ranks.items()
                ],
            )

    async def has_stored_ranks(self, season_id: str) -> bool:
        result = await self.db.execute(
            select(progress_t.c.id)
            .where(
                progress_t.c.season_id == season_id,
                progress_t.c.leaderboard_rank.isnot(None),
            )
            .limit(1)
        )
        return result.first() is not None

    async def ranked_participants(self, season_id: str, max_rank: int) -> list[SeasonProgress]:
        result = await self.db.execute(
            select(progress_t)
            .where(
                progress_t.c.season_id == season_id,
                progress_t.c.leaderboard_rank.between(1, max_rank),
            )
            .order_by(progress_t.c.leaderboard_rank.asc(), progress_t.c.player_id.asc())
        )
        return [_progress(row) for row in result.mappings()]

    async def mark_leaderboard_claimed(self, player_id: str, season_id: str, claimed_at: datetime) -> None:
        await self.db.execute(
            update(progress_t)
            .where(
                progress_t.c.player_id == player_id,
                progress_t.c.season_id == season_id,
            )
            .values(claimed_leaderboard_reward=True, claimed_at=claimed_at, updated_at=func.now())
        )

    # ── Grants ──

    async def list_grants(self, player_id: str, season_id: str) -> list[RewardGrant]:
        result = await self.db.execute(
            select(grants_t)
            .where(grants_t.c.player_id == player_id, grants_t.c.season_id == season_id)
            .order_by(grants_t.c.created_at.desc(), grants_t.c.id.desc())
        )
        return [_grant(row) for row in result.mappings()]

    async def get_grant(self, player_id: str, season_id: str, reward_key: str) -> RewardGrant | None:
        result = await self.db.execute(
            select(grants_t).where(
                grants_t.c.player_id == player_id,
                grants_t.c.season_id == season_id,
                grants_t.c.reward_key == reward_key,
            )
        )
        row = result.mappings().first()
        return _grant(row) if row else None

    async def claim_grant(self, grant: RewardGrant, claimed_at: datetime) -> RewardGrant | None:
        stmt = insert(grants_t).values(
            player_id=grant.player_id,
            season_id=grant.season_id,
            reward_key=grant.reward_key,
            reward_type=grant.reward_type,
            reward_tier=grant.reward_tier,
            final_rank=grant.final_rank,
            reward_payload=grant.reward_payload,
            claimed=True,
            claimed_at=claimed_at,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="season_rewards_player_season_key_key",
            set_={
                "reward_type": stmt.excluded.reward_type,
                "reward_tier": stmt.excluded.reward_tier,
                "final_rank": stmt.excluded.final_rank,
                "reward_payload": stmt.excluded.reward_payload,
                "claimed": True,
                "claimed_at": claimed_at,
            },
            where=grants_t.c.claimed.is_(False),
        ).returning(*grants_t.c)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        return _grant(row) if row else None

    # ── Battle pass purchases ──

    async def get_pass_purchase(self, player_id: str, season_id: str) -> PassPurchase | None:
        result = await self.db.execute(
            select(purchases_t).where(
                purchases_t.c.player_id == player_id,
                purchases_t.c.season_id == season_id,
            )
        )
        row = result.mappings().first()
        if row is None:
            return None
        return PassPurchase(
            player_id=row["player_id"],
            season_id=row["season_id"],
            premium=row["premium"],
            price_paid=row["price_paid"],
            purchased_at=row["purchased_at"],
        )

    async def record_pass_purchase(self, purchase: PassPurchase) -> bool:
        values: dict[str, Any] = {
            "player_id": purchase.player_id,
            "season_id": purchase.season_id,
            "premium": purchase.premium,
            "price_paid": purchase.price_paid,
        }
        if purchase.purchased_at is not None:
            values["purchased_at"] = purchase.purchased_at
        stmt = (
            insert(purchases_t)
            .values(**values)
            .on_conflict_do_nothing(constraint="season_pass_purchases_player_season_key")
            .returning(purchases_t.c.id)
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    # ── Sub-events ──

    async def get_event_participation(
        self, player_id: str, season_id: str, event_id: str,
    ) -> EventParticipation | None:
        result = await self.db.execute(
            select(events_t).where(
                events_t.c.player_id == player_id,
                events_t.c.season_id == season_id,
                events_t.c.event_id == event_id,
            )
        )
        row = result.mappings().first()
        return _participation(row) if row else None

    async def mark_event_participated(self, player_id: str, season_id: str, event_id: str) -> EventParticipation:
        stmt = insert(events_t).values(
            player_id=player_id,
            season_id=season_id,
            event_id=event_id,
            participated=True,
            reward_claimed=False,
        ).on_conflict_do_update(
            constraint="season_events_player_season_event_key",
            set_={"participated": True, "updated_at": func.now()},
        ).returning(*events_t.c)
        result = await self.db.execute(stmt)
        return _participation(result.mappings().one())

    async def mark_event_reward_claimed(self, player_id: str, season_id: str, event_id: str) -> bool:
        result = await self.db.execute(
            update(events_t)
            .where(
                events_t.c.player_id == player_id,
                events_t.c.season_id == season_id,
                events_t.c.event_id == event_id,
                events_t.c.reward_claimed.is_(False),
            )
            .values(reward_claimed=True, updated_at=func.now())
            .returning(events_t.c.id)
        )
        return result.first() is not None


class SqlBalanceStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_balances(self, player_id: str) -> Balances | None:
        result = await self.db.execute(select(balances_t).where(balances_t.c.player_id == player_id))
        row = result.mappings().first()
        return _balances(row) if row else None

    async def adjust_stars(self, player_id: str, delta: int) -> int:
        result = await self.db.execute(
            update(balances_t)
            .where(
                balances_t.c.player_id == player_id,
                balances_t.c.stars_balance + delta >= 0,
            )
            .values(stars_balance=balances_t.c.stars_balance + delta, updated_at=func.now())
            .returning(balances_t.c.stars_balance)
        )
        new_balance = result.scalar_one_or_none()
        if new_balance is not None:
            return int(new_balance)
        if delta < 0 and await self.get_balances(player_id) is not None:
            raise InsufficientStarsError(player_id)
        raise PlayerNotFoundError(player_id)

    async def adjust_energy(self, player_id: str, delta: int) -> int:
        result = await self.db.execute(
            update(balances_t)
            .where(balances_t.c.player_id == player_id)
            .values(energy=balances_t.c.energy + delta, updated_at=func.now())
            .returning(balances_t.c.energy)
        )
        new_energy = result.scalar_one_or_none()
        if new_energy is None:
            raise PlayerNotFoundError(player_id)
        return int(new_energy)

    async def add_experience(self, player_id: str, amount: int) -> Balances:
        result = await self.db.execute(
            update(balances_t)
            .where(balances_t.c.player_id == player_id)
            .values(xp=balances_t.c.xp + amount, updated_at=func.now())
            .returning(*balances_t.c)
        )
        row = result.mappings().first()
        if row is None:
            raise PlayerNotFoundError(player_id)
        return _balances(row)

    async def set_level(self, player_id: str, level: int) -> None:
        await self.db.execute(
            update(balances_t)
            .where(balances_t.c.player_id == player_id)
            .values(level=level, updated_at=func.now())
        )
