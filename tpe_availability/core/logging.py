"""
structlog setup shared by the API process and the test suite.

Every module logs through `structlog.get_logger(__name__)` with a snake_case
event name plus keyword context, e.g.

    logger.info("daily_computed", day="2025-03-03", policy_id=1, count=42)
"""
from __future__ import annotations

import logging
import sys

import structlog

from tpe_availability.core.config import settings


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure stdlib logging and structlog. Safe to call more than once."""
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    renderer = (
        structlog.processors.JSONRenderer()
        if (fmt or settings.LOG_FORMAT) == "json"
        else structlog.dev.ConsoleRenderer()
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    logging.getLogger().setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
