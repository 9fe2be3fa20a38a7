"""structlog configuration shared by the CLI and embedding applications.

The library itself only calls structlog.get_logger(); nothing is
configured on import. Call configure_logging() once at startup.
"""

from __future__ import annotations

import logging
import os

import structlog

LOG_LEVEL_ENV = "CLAMM_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def resolve_log_level(level: str | int | None = None) -> int:
    """Turn a level name or number into a logging level.

    Falls back to the CLAMM_LOG_LEVEL environment variable, then INFO.

    Raises:
        ValueError: If the level name is unknown
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(level: str | int | None = None, json_output: bool = False) -> None:
    """Configure structlog processors and level filtering.

    Args:
        level: Level name or number; defaults to CLAMM_LOG_LEVEL or INFO
        json_output: Render one JSON object per line instead of console text
    """
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolve_log_level(level)),
        cache_logger_on_first_use=False,
    )


__all__ = ["configure_logging", "resolve_log_level", "LOG_LEVEL_ENV"]
