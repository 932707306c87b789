"""Structured Logging Configuration.

This module configures structlog for the service. Production output is JSON
(one object per line, for log aggregation); LOG_FORMAT=console switches to
the human-readable renderer for local development.

Configuration:
- JSON output format (default)
- Context binding support (correlation IDs, playlist IDs, etc.)
- Log levels: DEBUG, INFO, WARNING, ERROR, CRITICAL
"""

import logging
import sys

import structlog

from learntrack.config import get_log_format, get_log_level


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog processors and the stdlib root handler.

    Args:
        level: Log level name, defaults to LOG_LEVEL.
        fmt: "json" or "console", defaults to LOG_FORMAT.
    """
    level_name = (level or get_log_level()).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    output_format = fmt or get_log_format()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    renderer: structlog.types.Processor
    if output_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
