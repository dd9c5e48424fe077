"""dcmproc exceptions.

Expected failures of the executor and the supervisor are never raised.
They are returned inside an ``Err`` (see ``dcmproc._result``) so callers can
branch on the exception type without a try block.
"""

from pathlib import Path
from typing import Any

from dcmproc.utils._text import format_command


class DcmprocError(Exception):
    """Base exception for dcmproc errors."""


# =============================================================================
# Process Execution Exceptions
# =============================================================================


class ProcessError(DcmprocError):
    """Base exception for short-lived process failures.

    Attributes:
        program: The program that was (or would have been) executed.
        arguments: The argument vector passed to the program.
    """

    def __init__(
        self,
        message: str,
        *,
        program: str,
        args: tuple[str, ...] = (),
    ) -> None:
        """Initialize with error message and command context."""
        super().__init__(message)
        self.program: str = program
        self.arguments: tuple[str, ...] = args

    @property
    def command(self) -> str:
        """Return the capped command line for triage messages."""
        return format_command(self.program, self.arguments)


class ProcessTimeoutError(ProcessError, TimeoutError):
    """Raised when a process does not exit before its deadline."""

    def __init__(
        self,
        message: str,
        *,
        program: str,
        args: tuple[str, ...] = (),
        timeout_ms: int,
    ) -> None:
        """Initialize with error message and deadline context."""
        super().__init__(message, program=program, args=args)
        self.timeout_ms: int = timeout_ms


class ProcessCancelledError(ProcessError):
    """Raised when an external cancellation token fires."""

    def __init__(
        self,
        message: str,
        *,
        program: str,
        args: tuple[str, ...] = (),
        reason: str | None = None,
    ) -> None:
        """Initialize with error message and cancellation reason."""
        super().__init__(message, program=program, args=args)
        self.reason: str | None = reason


class SpawnError(ProcessError):
    """Raised when the OS refuses to create the process.

    Attributes:
        binary_not_found: Whether the program does not exist at all.
        cause: The underlying OSError.
    """

    def __init__(
        self,
        message: str,
        *,
        program: str,
        args: tuple[str, ...] = (),
        binary_not_found: bool = False,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and spawn context."""
        super().__init__(message, program=program, args=args)
        self.binary_not_found: bool = binary_not_found
        self.cause: Exception | None = cause


class StreamError(ProcessError):
    """Raised when reading a standard stream of the child fails."""

    def __init__(
        self,
        message: str,
        *,
        program: str,
        args: tuple[str, ...] = (),
        source: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and stream context."""
        super().__init__(message, program=program, args=args)
        self.source: str = source
        self.cause: Exception | None = cause


# =============================================================================
# Supervisor Exceptions
# =============================================================================


class SupervisorError(DcmprocError):
    """Base exception for long-lived process supervision failures."""

    def __init__(self, message: str, *, program: str) -> None:
        """Initialize with error message and program context."""
        super().__init__(message)
        self.program: str = program


class StartupTimeoutError(SupervisorError, TimeoutError):
    """Raised when the readiness predicate never matched in time."""

    def __init__(self, message: str, *, program: str, timeout_ms: int) -> None:
        """Initialize with error message and startup deadline."""
        super().__init__(message, program=program)
        self.timeout_ms: int = timeout_ms


class AlreadyStartedError(SupervisorError):
    """Raised when start() is called on a supervisor that is not idle."""

    def __init__(self, message: str, *, program: str, state: str) -> None:
        """Initialize with error message and the rejecting state."""
        super().__init__(message, program=program)
        self.state: str = state


class StartupAbortedError(SupervisorError):
    """Raised when the process exits or is stopped before becoming ready."""

    def __init__(
        self,
        message: str,
        *,
        program: str,
        exit_code: int | None = None,
    ) -> None:
        """Initialize with error message and exit code, if any."""
        super().__init__(message, program=program)
        self.exit_code: int | None = exit_code


# =============================================================================
# Tool Exceptions
# =============================================================================


class ToolError(DcmprocError):
    """Raised when a DCMTK tool exits with a non-zero status.

    Attributes:
        tool_name: The DCMTK binary name (e.g. "dcm2xml").
        arguments: The arguments passed to the tool.
        exit_code: The process exit code.
        stderr: The full captured stderr (the message holds a capped excerpt).
    """

    def __init__(
        self,
        message: str,
        *,
        tool_name: str,
        args: tuple[str, ...],
        exit_code: int,
        stderr: str = "",
    ) -> None:
        """Initialize with error message and tool context."""
        super().__init__(message)
        self.tool_name: str = tool_name
        self.arguments: tuple[str, ...] = args
        self.exit_code: int = exit_code
        self.stderr: str = stderr


class BinaryNotFoundError(DcmprocError):
    """Raised when the DCMTK binaries cannot be located."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        searched: tuple[Path, ...] = (),
    ) -> None:
        """Initialize with error message and search context."""
        super().__init__(message)
        self.tool_name: str | None = tool_name
        self.searched: tuple[Path, ...] = searched


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(DcmprocError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration values fail validation."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        errors: list[dict[str, Any]] | None = None,  # pyright: ignore[reportExplicitAny]
    ) -> None:
        """Initialize with error message and validation details."""
        super().__init__(message)
        self.source: str | None = source
        self.errors: list[dict[str, Any]] = errors or []  # pyright: ignore[reportExplicitAny]
