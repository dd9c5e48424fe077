"""Data models for process execution and supervision.

This module defines the core data types:
- InvocationRequest: Immutable request for a short-lived program run
- ProcessResult: Captured output of a completed run
- ProcessState: Lifecycle states of a supervised process
- ProcessLine: One decoded output line tagged with its stream
- ProcessErrorEvent: Payload of the supervisor's error channel
- SupervisorConfig: Configuration of a long-lived program
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Literal

from dcmproc.constants import (
    DEFAULT_DRAIN_TIMEOUT_MS,
    DEFAULT_START_TIMEOUT_MS,
    DEFAULT_TIMEOUT_MS,
)

from ._cancel import CancelToken

LineSource = Literal["stdout", "stderr"]

ReadyPredicate = Callable[[str], bool]


def _freeze_env(env: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(env))


class ProcessState(StrEnum):
    """Supervised process lifecycle states.

    - IDLE: No OS process exists yet
    - RUNNING: The process is spawned and ready
    - STOPPED: Terminal; the process was stopped, failed to start, or exited
    """

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


@dataclass(frozen=True, slots=True)
class InvocationRequest:
    """Immutable request to run a program to completion.

    Attributes:
        program: Path or name of the executable.
        args: Argument vector, passed literally (never through a shell).
        cwd: Working directory for the process.
        env: Environment variables merged over the inherited environment.
        replace_env: Use ``env`` as the complete environment instead.
        timeout_ms: Deadline in milliseconds, measured from submission.
        cancel_token: Optional token that aborts the run when cancelled.
    """

    program: str
    args: tuple[str, ...] = ()
    cwd: Path | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    replace_env: bool = False
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    cancel_token: CancelToken | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "env", _freeze_env(self.env))
        if self.timeout_ms <= 0:
            msg = f"timeout_ms must be positive, got {self.timeout_ms}"
            raise ValueError(msg)

    @property
    def argv(self) -> list[str]:
        """Return the full argument vector including the program."""
        return [self.program, *self.args]


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Captured output of a program that ran to completion.

    Attributes:
        stdout: Captured standard output, decoded as UTF-8.
        stderr: Captured standard error, decoded as UTF-8.
        exit_code: Exit status; negative values are terminating signals.
        stdout_truncated: Whether stdout exceeded the capture ceiling.
        stderr_truncated: Whether stderr exceeded the capture ceiling.
    """

    stdout: str
    stderr: str
    exit_code: int
    stdout_truncated: bool = False
    stderr_truncated: bool = False


@dataclass(frozen=True, slots=True)
class ProcessLine:
    """One line of output from a supervised process.

    Attributes:
        source: Which stream the line came from.
        text: Line content without its terminator.
    """

    source: LineSource
    text: str


@dataclass(frozen=True, slots=True)
class ProcessErrorEvent:
    """Payload of the supervisor's ``error`` channel.

    Attributes:
        error: The error that occurred.
        fatal: Whether the error ended the supervised process.
    """

    error: Exception
    fatal: bool


@dataclass(frozen=True, slots=True)
class SupervisorConfig:
    """Configuration for a long-lived program.

    Attributes:
        program: Path or name of the executable.
        args: Argument vector, passed literally.
        cwd: Working directory for the process.
        env: Environment variables merged over the inherited environment.
        replace_env: Use ``env`` as the complete environment instead.
        ready: Readiness predicate applied to stdout lines during startup.
            When None, start() resolves as soon as the spawn is confirmed.
        start_timeout_ms: Deadline for readiness.
        drain_timeout_ms: Grace between SIGTERM and SIGKILL on stop, and
            for flushing buffered output after the process exits.
    """

    program: str
    args: tuple[str, ...] = ()
    cwd: Path | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    replace_env: bool = False
    ready: ReadyPredicate | None = field(default=None, compare=False)
    start_timeout_ms: int = DEFAULT_START_TIMEOUT_MS
    drain_timeout_ms: int = DEFAULT_DRAIN_TIMEOUT_MS

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "env", _freeze_env(self.env))
        if self.start_timeout_ms <= 0:
            msg = f"start_timeout_ms must be positive, got {self.start_timeout_ms}"
            raise ValueError(msg)
        if self.drain_timeout_ms <= 0:
            msg = f"drain_timeout_ms must be positive, got {self.drain_timeout_ms}"
            raise ValueError(msg)

    @property
    def argv(self) -> list[str]:
        """Return the full argument vector including the program."""
        return [self.program, *self.args]
