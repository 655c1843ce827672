"""structlog configuration for powercanary processes."""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Route structlog through stdlib logging with console or JSON output.

    Args:
        level: Minimum level name ("DEBUG", "INFO", ...)
        json_logs: Emit one JSON object per line instead of console output
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level, force=True)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def apply_log_level(key: str, value: object) -> None:
    """Config subscriber that re-applies ``logging.level`` on hot update."""
    if key != "logging.level":
        return
    log_level = getattr(logging, str(value).upper(), logging.INFO)
    logging.getLogger().setLevel(log_level)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(log_level))
