"""Structured logging configuration with structlog.

Engine modules log through ``structlog.get_logger()`` with snake_case event
names and keyword context (``season_xp_recorded player_id=... amount=...``).
Operator jobs bind the season and job name once so every line emitted during
a run carries them.
"""

import logging

import structlog

from idle_season.config import Settings


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON or console output."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))


def bind_job_context(job: str, season_id: str | None = None) -> None:
    """Attach operator job context to every log line of the current task."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(job=job, season_id=season_id)


def clear_job_context() -> None:
    structlog.contextvars.clear_contextvars()
