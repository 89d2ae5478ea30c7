"""structlog setup for processes embedding the exchange."""

from __future__ import annotations

import logging
import os

import structlog


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Configure structlog rendering.

    Args:
        level: Minimum log level name. Defaults to EXCHANGE_LOG_LEVEL or INFO.
        json_output: Render JSON lines instead of console output. Defaults to
            EXCHANGE_LOG_JSON (true/1/yes).
    """
    if level is None:
        level = os.environ.get("EXCHANGE_LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("EXCHANGE_LOG_JSON", "false").lower() in ("true", "1", "yes")

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
