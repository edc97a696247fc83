"""
Structured logging.

Modules log through structlog with the event name first and the fields as
keyword arguments:

    logger = getLogger(__name__)
    logger.info("template_expanded", placeholders=3)

`enable_logging` installs the console renderer and the level filter used by
the command line.
"""

import logging
import sys
from typing import Any, Optional, Union

import structlog
from structlog.types import Processor

_LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def getLogger(name: str) -> Any:
    return structlog.get_logger(logger=name)


def parse_log_level(log_level: Union[str, int, None]) -> int:
    """
    Maps a level name (case-insensitive) or number to a logging level.

    Raises:
        ValueError: If the level name is unknown
    """
    if log_level is None:
        return logging.WARNING
    if isinstance(log_level, int):
        return log_level
    level = _LOG_LEVELS.get(log_level.strip().lower())
    if level is None:
        raise ValueError(f"Unknown log level: {log_level}")
    return level


def enable_logging(
    log_level: Union[str, int, None] = "warning", stream: Optional[Any] = None
) -> None:
    """
    Configures structlog to render `key=value` lines on `stream` (stderr by
    default), dropping events below `log_level`.

    Calling it again replaces the previous configuration.
    """
    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(
            colors=False, exception_formatter=structlog.dev.plain_traceback
        ),
    ]
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(parse_log_level(log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )
