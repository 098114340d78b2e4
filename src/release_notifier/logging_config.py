"""Structured logging configuration.

The notifier runs inside CI steps, where logs are read by humans in the job
console, and occasionally as a scheduled job whose output is shipped to a
log store. structlog covers both:

- development / ci: key=value console output (colors off in CI)
- production: one JSON object per line

Usage:
    from release_notifier.logging_config import setup_logging, get_logger

    setup_logging(environment="ci")
    logger = get_logger(__name__)
    logger.info("webhook_sent", version="1.2.3", tickets_count=4)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog


def setup_logging(
    environment: str | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        environment: "development", "ci" or "production". Reads from the
                     ENVIRONMENT env var if not provided; a set CI env var
                     selects "ci".
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Reads from LOG_LEVEL env var if not provided.

    Raises:
        ValueError: If the log level is not a logging level name.
    """
    env = environment or os.environ.get("ENVIRONMENT") or (
        "ci" if os.environ.get("CI") else "development"
    )
    level_name = (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if env == "production":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        # CI consoles render ANSI codes inconsistently
        renderer = structlog.dev.ConsoleRenderer(colors=env == "development")

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # httpx logs every request at INFO through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> Any:
    """Return a structlog bound logger named after the calling module."""
    return structlog.get_logger(name)
