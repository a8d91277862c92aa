"""Persistence contracts the season engine runs against.

``SeasonStore`` owns season progress, reward grants, pass purchases and
sub-event participation. ``BalanceStore`` owns player balances and lifetime
XP. Both operate inside the caller's unit of work; ``SeasonStore.atomic()``
groups several calls (on either store) so they land or roll back together.
The caller owning the session commits.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol


class SeasonStoreError(Exception):
    """Base class for store contract failures the engine knows how to handle."""


class InsufficientStarsError(SeasonStoreError):
    """A negative stars adjustment would take the balance below zero."""

    code = "insufficient_stars"


class PlayerNotFoundError(SeasonStoreError):
    """No balance row exists for the player."""

    code = "player_not_found"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class SeasonProgress:
    player_id: str
    season_id: str
    season_xp: int = 0
    season_energy_produced: int = 0
    leaderboard_rank: int | None = None
    claimed_leaderboard_reward: bool = False
    claimed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class RewardGrant:
    player_id: str
    season_id: str
    reward_key: str
    reward_type: str
    reward_tier: str | None
    final_rank: int | None
    reward_payload: dict[str, Any] = field(default_factory=dict)
    claimed: bool = False
    claimed_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class PassPurchase:
    player_id: str
    season_id: str
    premium: bool
    price_paid: int
    purchased_at: datetime | None = None


@dataclass
class EventParticipation:
    player_id: str
    season_id: str
    event_id: str
    participated: bool = False
    reward_claimed: bool = False


@dataclass
class Balances:
    player_id: str
    energy: int
    stars_balance: int
    xp: int
    level: int


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class SeasonStore(Protocol):
    def atomic(self) -> AbstractAsyncContextManager[None]:
        """All-or-nothing block spanning season and balance writes."""
        ...

    async def get_progress(self, player_id: str, season_id: str) -> SeasonProgress | None: ...

    async def increment_progress(
        self, player_id: str, season_id: str, *, xp: int = 0, energy: int = 0,
    ) -> SeasonProgress:
        """Create the row with zero counters if absent, then add atomically."""
        ...

    async def leaderboard(self, season_id: str, limit: int) -> list[SeasonProgress]:
        """Participants by energy DESC, xp DESC, player_id ASC."""
        ...

    async def write_ranks(self, season_id: str, ranks: dict[str, int]) -> None:
        """Replace the season's stored ranks with ``player_id -> rank``.

        Rows missing from ``ranks`` lose any rank they held, so the snapshot
        never carries two players on the same rank.
        """
        ...

    async def has_stored_ranks(self, season_id: str) -> bool: ...

    async def ranked_participants(self, season_id: str, max_rank: int) -> list[SeasonProgress]:
        """Rows with ``1 <= leaderboard_rank <= max_rank``, ordered by rank."""
        ...

    async def mark_leaderboard_claimed(self, player_id: str, season_id: str, claimed_at: datetime) -> None: ...

    async def list_grants(self, player_id: str, season_id: str) -> list[RewardGrant]: ...

    async def get_grant(self, player_id: str, season_id: str, reward_key: str) -> RewardGrant | None: ...

    async def claim_grant(self, grant: RewardGrant, claimed_at: datetime) -> RewardGrant | None:
        """Insert-or-reuse the grant row and flip it to claimed.

        Compare-and-set: returns the claimed row only to the single caller
        that performed the unclaimed -> claimed transition, ``None`` otherwise.
        """
        ...

    async def get_pass_purchase(self, player_id: str, season_id: str) -> PassPurchase | None: ...

    async def record_pass_purchase(self, purchase: PassPurchase) -> bool:
        """Insert the purchase; ``False`` when one already exists."""
        ...

    async def get_event_participation(
        self, player_id: str, season_id: str, event_id: str,
    ) -> EventParticipation | None: ...

    async def mark_event_participated(self, player_id: str, season_id: str, event_id: str) -> EventParticipation: ...

    async def mark_event_reward_claimed(self, player_id: str, season_id: str, event_id: str) -> bool: ...


class BalanceStore(Protocol):
    async def get_balances(self, player_id: str) -> Balances | None: ...

    async def adjust_stars(self, player_id: str, delta: int) -> int:
        """Add ``delta`` stars and return the new balance.

        Raises InsufficientStarsError when a negative delta would underflow.
        """
        ...

    async def adjust_energy(self, player_id: str, delta: int) -> int: ...

    async def add_experience(self, player_id: str, amount: int) -> Balances: ...

    async def set_level(self, player_id: str, level: int) -> None: ...
