"""Structlog configuration for the application.

Configures structlog with colored console output for development
and JSON output for production.
"""

import logging
import os
import sys

import structlog

_TRUTHY = ("1", "true", "yes")


def _use_colors() -> bool:
    # FORCE_COLOR=1 enables colors even in non-TTY environments (like Docker)
    force_color = os.environ.get("FORCE_COLOR", "").lower() in _TRUTHY
    return force_color or sys.stdout.isatty()


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for the tenant admin service.

    Args:
        level: Minimum log level name (e.g. "INFO"). Defaults to the
            AUTHP_LOG_LEVEL environment variable, else DEBUG.
    """
    level_name = (level or os.environ.get("AUTHP_LOG_LEVEL", "DEBUG")).upper()
    min_level = logging.getLevelNamesMapping().get(level_name, logging.DEBUG)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if _use_colors():
        processors: list[structlog.types.Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
