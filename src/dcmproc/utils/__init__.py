"""Shared utilities for dcmproc."""

from ._logging import (
    LogFormatType,
    create_logger,
    get_logger,
    reset_logger,
    set_logger,
)
from ._text import (
    MAX_ARGS_LENGTH,
    MAX_STDERR_LENGTH,
    format_args,
    format_command,
    truncate,
)

__all__ = [
    "MAX_ARGS_LENGTH",
    "MAX_STDERR_LENGTH",
    "LogFormatType",
    "create_logger",
    "format_args",
    "format_command",
    "get_logger",
    "reset_logger",
    "set_logger",
    "truncate",
]
