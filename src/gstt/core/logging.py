"""Structured logging setup using structlog."""

import logging
import sys
from typing import Any

import structlog


def configure_logging(level: str = "WARNING") -> None:
    """Configure structlog to render to stderr.

    Standard output is reserved for transcripts, so every log line goes to
    stderr. Colours are enabled only when stderr is a terminal.

    Args:
        level: Minimum level name, e.g. "DEBUG" or "WARNING".
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S.%f", utc=False),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a structlog logger bound to the given module name.

    The logger stays lazy, so module-level loggers pick up the
    configuration applied later by :func:`configure_logging`.
    """
    if name is not None:
        # "logger" is a positional parameter of structlog.wrap_logger.
        initial_values.setdefault("logger_name", name)
    return structlog.get_logger(**initial_values)
