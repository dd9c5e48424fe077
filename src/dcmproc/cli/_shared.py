"""Shared CLI utilities: exit codes and error reporting."""

from enum import IntEnum
from typing import TYPE_CHECKING, Never

from dcmproc.exceptions import (
    BinaryNotFoundError,
    ProcessTimeoutError,
    SpawnError,
    StartupTimeoutError,
)

if TYPE_CHECKING:
    from rich.console import Console


class ExitCode(IntEnum):
    """Exit codes for dcmproc commands.

    The process-failure codes follow the shell conventions used by
    ``timeout(1)`` and POSIX shells, so scripts can treat ``dcmproc exec``
    like the program it wraps.
    """

    SUCCESS = 0
    FAILURE = 1
    CONFIG_ERROR = 2
    NOT_FOUND = 3
    TIMEOUT = 124
    CANNOT_EXECUTE = 126
    COMMAND_NOT_FOUND = 127
    SIGNAL_BASE = 128


def exit_code_for_error(error: Exception) -> ExitCode:
    """Map a returned failure to the exit code the CLI reports."""
    if isinstance(error, ProcessTimeoutError | StartupTimeoutError):
        return ExitCode.TIMEOUT
    if isinstance(error, SpawnError):
        return (
            ExitCode.COMMAND_NOT_FOUND
            if error.binary_not_found
            else ExitCode.CANNOT_EXECUTE
        )
    if isinstance(error, BinaryNotFoundError):
        return ExitCode.NOT_FOUND
    return ExitCode.FAILURE


def exit_status(returncode: int) -> int:
    """Convert a child's return code to a shell exit status.

    A child killed by a signal reports ``-signum``; shells report that as
    ``128 + signum``.
    """
    if returncode < 0:
        return ExitCode.SIGNAL_BASE - returncode
    return returncode


def exit_with_error(
    message: str,
    code: int = ExitCode.FAILURE,
    *,
    console: "Console",
) -> Never:
    """Print an error message and exit with the specified code.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    console.print(f"[red]Error:[/red] {message}", markup=True, highlight=False)
    raise SystemExit(code)
