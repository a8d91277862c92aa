"""Standalone runner for the season close jobs.

Runs one job in-process without an arq queue, for operators closing a
season by hand.

Usage: python -m idle_season.season.runner {refresh-ranks,distribute} [--force]
"""

from __future__ import annotations

import argparse
import asyncio
import json

import structlog

from idle_season.config import get_settings
from idle_season.season.worker import (
    distribute_season_rewards,
    refresh_season_ranks,
    season_shutdown,
    season_startup,
)

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m idle_season.season.runner",
        description="Season close operator commands",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("refresh-ranks", help="Snapshot the live leaderboard into stored ranks")
    distribute = sub.add_parser("distribute", help="Grant leaderboard rewards for the closed season")
    distribute.add_argument(
        "--force",
        action="store_true",
        help="Distribute even while the season is still running",
    )
    return parser


async def run(command: str, force: bool = False) -> dict:
    ctx: dict = {}
    await season_startup(ctx)
    try:
        if command == "refresh-ranks":
            return await refresh_season_ranks(ctx)
        return await distribute_season_rewards(ctx, force=force)
    finally:
        await season_shutdown(ctx)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logger.info("season_runner_start", command=args.command, environment=settings.environment)
    result = asyncio.run(run(args.command, force=getattr(args, "force", False)))
    print(json.dumps(result, default=str))  # noqa: T201


if __name__ == "__main__":
    main()
