"""Structured logging configuration for I AM CFO.

Every event carries ``service="iamcfo"`` so CLI, sync and assistant logs can
be told apart from the data store's own logs when they share a collector.
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from iamcfo.config.settings import get_settings

SERVICE_NAME = "iamcfo"


def add_service_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag events with the service name unless a caller bound its own."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def build_processors(log_format: Literal["json", "console"]) -> list[Processor]:
    """Processor chain ending in the renderer for ``log_format``."""
    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    return [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
) -> None:
    """Configure structured logging for the CLI and background sync.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL.
        format: Output format (json or console). Defaults to LOG_FORMAT.
    """
    settings = get_settings()
    log_level = level or settings.log_level

    # stderr keeps stdout clean for CSV export
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
    )

    structlog.configure(
        processors=build_processors(format or settings.log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for ``name`` (typically __name__)."""
    return structlog.get_logger(name)
