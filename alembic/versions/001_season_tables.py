"""Season progression tables.

Creates season_progress, season_rewards, season_pass_purchases and
season_events. The progress (player balances) table belongs to the core
game backend and is only created here when missing, for standalone
deployments and tests.

Revision ID: 001_season_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_season_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Player balances (shared with the core backend) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS progress (
            player_id VARCHAR(64) PRIMARY KEY,
            energy BIGINT NOT NULL DEFAULT 0,
            stars_balance BIGINT NOT NULL DEFAULT 0,
            xp BIGINT NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Season progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS season_progress (
            id BIGSERIAL PRIMARY KEY,
            player_id VARCHAR(64) NOT NULL,
            season_id VARCHAR(64) NOT NULL,
            season_xp BIGINT NOT NULL DEFAULT 0,
            season_energy_produced BIGINT NOT NULL DEFAULT 0,
            leaderboard_rank INTEGER,
            claimed_leaderboard_reward BOOLEAN NOT NULL DEFAULT FALSE,
            claimed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT season_progress_player_season_key UNIQUE (player_id, season_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_season_progress_player
        ON season_progress(player_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_season_progress_leaderboard
        ON season_progress(season_id, season_energy_produced DESC, season_xp DESC, player_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_season_progress_rank
        ON season_progress(season_id, leaderboard_rank)
        WHERE leaderboard_rank IS NOT NULL
    """)

    # --- Reward grants ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS season_rewards (
            id BIGSERIAL PRIMARY KEY,
            player_id VARCHAR(64) NOT NULL,
            season_id VARCHAR(64) NOT NULL,
            reward_key VARCHAR(64) NOT NULL,
            reward_type VARCHAR(32) NOT NULL,
            reward_tier VARCHAR(32),
            final_rank INTEGER,
            reward_payload JSONB NOT NULL DEFAULT '{}',
            claimed BOOLEAN NOT NULL DEFAULT FALSE,
            claimed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT season_rewards_player_season_key_key UNIQUE (player_id, season_id, reward_key)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_season_rewards_player
        ON season_rewards(player_id)
    """)

    # --- Battle pass purchases ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS season_pass_purchases (
            id BIGSERIAL PRIMARY KEY,
            player_id VARCHAR(64) NOT NULL,
            season_id VARCHAR(64) NOT NULL,
            premium BOOLEAN NOT NULL DEFAULT TRUE,
            price_paid INTEGER NOT NULL DEFAULT 0,
            purchased_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT season_pass_purchases_player_season_key UNIQUE (player_id, season_id)
        )
    """)

    # --- Sub-event participation ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS season_events (
            id BIGSERIAL PRIMARY KEY,
            player_id VARCHAR(64) NOT NULL,
            season_id VARCHAR(64) NOT NULL,
            event_id VARCHAR(64) NOT NULL,
            participated BOOLEAN NOT NULL DEFAULT FALSE,
            reward_claimed BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT season_events_player_season_event_key UNIQUE (player_id, season_id, event_id)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS season_events CASCADE")
    op.execute("DROP TABLE IF EXISTS season_pass_purchases CASCADE")
    op.execute("DROP TABLE IF EXISTS season_rewards CASCADE")
    op.execute("DROP TABLE IF EXISTS season_progress CASCADE")
