"""Logging utilities for dcmproc.

This module provides standalone structlog logger factories that write
JSON-formatted or text-formatted logs either to stderr or to a log file.
Each logger is self-contained and does not modify global structlog
configuration, so embedding applications keep control of their own setup.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

LogFormatType = Literal["json", "text"]

_default_logger: "FilteringBoundLogger | None" = None


def _get_log_level(default: str = "warning") -> int:
    """Get the log level from environment variables.

    Checks DCMPROC_DEBUG first (sets DEBUG if present), then
    DCMPROC_LOG_LEVEL. Falls back to ``default``.

    Returns:
        The logging level as an integer.
    """
    if getenv("DCMPROC_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(
        getenv("DCMPROC_LOG_LEVEL", default).upper(),
        log_levels.get(default.upper(), logging.WARNING),
    )


def _log_level_from_string(level: str, *, respect_env: bool = False) -> int:
    """Convert a log level string to a logging level integer.

    Args:
        level: Log level string (debug, info, warning, error).
        respect_env: If True, DCMPROC_DEBUG overrides to DEBUG level.

    Returns:
        The logging level as an integer.
    """
    if respect_env and getenv("DCMPROC_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), logging.INFO)


def create_logger(
    log_file: str = "",
    *,
    level: str | None = None,
    log_format: LogFormatType = "text",
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> "FilteringBoundLogger":
    """Create a standalone structlog logger.

    The log level is determined by (in order of precedence):
    1. DCMPROC_DEBUG environment variable (if set, enables DEBUG level)
    2. The ``level`` parameter (if provided)
    3. DCMPROC_LOG_LEVEL environment variable
    4. Default: WARNING

    Args:
        log_file: Path to a log file (opened in append mode). Empty string
            writes to stderr.
        level: Optional log level string (debug, info, warning, error).
        log_format: Output format, either "json" or "text".
        max_bytes: Maximum size in bytes before rotation. Must be set with
            backup_count for rotation to be enabled.
        backup_count: Number of rotated log files to keep. Must be set with
            max_bytes for rotation to be enabled.

    Returns:
        A configured FilteringBoundLogger instance.
    """
    effective_level = (
        _log_level_from_string(level, respect_env=True)
        if level is not None
        else _get_log_level()
    )

    stdlib_logger: logging.Logger | None = None
    if log_file and max_bytes is not None and backup_count is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Use stdlib logging with RotatingFileHandler for proper rotation support
        stdlib_logger = logging.getLogger(f"dcmproc.{log_path.stem}.{id(log_path)}")
        stdlib_logger.handlers.clear()
        stdlib_logger.propagate = False
        stdlib_logger.setLevel(effective_level)

        handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        handler.setLevel(effective_level)
        handler.setFormatter(logging.Formatter("%(message)s"))
        stdlib_logger.addHandler(handler)
        raw_logger: object = stdlib_logger
    elif log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        raw_logger = structlog.WriteLoggerFactory(file=log_path.open("a"))()
    else:
        raw_logger = structlog.PrintLoggerFactory(file=sys.stderr)()

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Text format: "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    wrapper_class = structlog.make_filtering_bound_logger(effective_level)

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            raw_logger,
            processors=processors,
            wrapper_class=wrapper_class,
            context_class=dict,
        ),
    )


def get_logger() -> "FilteringBoundLogger":
    """Return the process-wide default logger, creating it on first use.

    Components accept an explicit ``logger`` argument; this is the fallback
    when none is given. The default writes text logs to stderr at WARNING
    unless overridden by environment variables or ``set_logger``.
    """
    global _default_logger  # noqa: PLW0603
    if _default_logger is None:
        _default_logger = create_logger()
    return _default_logger


def set_logger(logger: "FilteringBoundLogger") -> None:
    """Replace the process-wide default logger."""
    global _default_logger  # noqa: PLW0603
    _default_logger = logger


def reset_logger() -> None:
    """Drop the default logger so the next get_logger() call rebuilds it."""
    global _default_logger  # noqa: PLW0603
    _default_logger = None
