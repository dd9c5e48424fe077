"""Bounded executor for short-lived programs.

This module runs one external program to exactly one outcome:
- Normal exit: ``Ok(ProcessResult)`` with captured, size-capped output
- Deadline elapsed: ``Err(ProcessTimeoutError)``
- Cancellation token fired: ``Err(ProcessCancelledError)``
- OS refused to spawn: ``Err(SpawnError)``
- Reading a stream failed: ``Err(StreamError)``

The deadline, the cancellation watcher and the run-to-exit path race inside
one task group. The first of them to finish settles the outcome through a
one-shot guard and cancels the others, so no timer outlives the call. On any
failure the whole process tree is terminated and the child is reaped.
"""

import subprocess
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio
import anyio.abc

from dcmproc._result import Err, Ok, Result
from dcmproc.constants import MAX_BUFFER_BYTES, READ_CHUNK_BYTES, REAP_TIMEOUT_MS
from dcmproc.exceptions import (
    ProcessCancelledError,
    ProcessTimeoutError,
    SpawnError,
    StreamError,
)
from dcmproc.utils import format_command, get_logger

from ._buffer import CapturedBuffer
from ._models import InvocationRequest, LineSource, ProcessResult
from ._tree import build_env, spawn_kwargs, terminate_tree

if TYPE_CHECKING:
    from anyio.abc import ByteReceiveStream
    from structlog.typing import FilteringBoundLogger

    from ._cancel import CancelToken


@final
class _Settler:
    """One-shot guard: only the first outcome offered is kept."""

    __slots__ = ("outcome",)

    def __init__(self) -> None:
        self.outcome: Result[ProcessResult] | None = None

    def settle(self, outcome: Result[ProcessResult]) -> bool:
        if self.outcome is not None:
            return False
        self.outcome = outcome
        return True


def spawn_error(program: str, args: tuple[str, ...], error: OSError) -> SpawnError:
    """Classify an OSError raised while creating a process.

    A missing binary gets its own message and flag so callers can tell it
    apart from permission problems and other spawn failures.
    """
    command = format_command(program, args)
    if isinstance(error, FileNotFoundError):
        msg = f"Process error: binary not found: {program} ({command})"
        return SpawnError(
            msg, program=program, args=args, binary_not_found=True, cause=error
        )
    reason = error.strerror or str(error)
    msg = f"Process error: failed to spawn {program}: {reason} ({command})"
    return SpawnError(msg, program=program, args=args, cause=error)


@final
class _Invocation:
    """State of one running invocation, owned by a single task group."""

    __slots__ = (
        "_deadline",
        "_logger",
        "_process",
        "_request",
        "_scope",
        "_settler",
        "_stderr",
        "_stdout",
    )

    def __init__(
        self,
        request: InvocationRequest,
        process: anyio.abc.Process,
        deadline: float,
        max_buffer_bytes: int,
        logger: "FilteringBoundLogger",
    ) -> None:
        self._request = request
        self._process = process
        self._deadline = deadline
        self._logger = logger
        self._stdout = CapturedBuffer(max_buffer_bytes)
        self._stderr = CapturedBuffer(max_buffer_bytes)
        self._settler = _Settler()
        self._scope: anyio.CancelScope | None = None

    async def run(self) -> Result[ProcessResult]:
        try:
            async with anyio.create_task_group() as tg:
                self._scope = tg.cancel_scope
                tg.start_soon(self._run_to_exit)
                tg.start_soon(self._expire)
                if self._request.cancel_token is not None:
                    tg.start_soon(self._watch_cancel, self._request.cancel_token)
        finally:
            await self._close()

        outcome = self._settler.outcome
        if outcome is None:  # pragma: no cover - every path settles before exit
            msg = "invocation finished without an outcome"
            raise RuntimeError(msg)
        return outcome

    def _finish(self, outcome: Result[ProcessResult], *, terminate: bool) -> None:
        if not self._settler.settle(outcome):
            return
        if terminate and self._process.returncode is None:
            _ = terminate_tree(self._process.pid)
        if self._scope is not None:
            self._scope.cancel()

    async def _drain(
        self,
        stream: "ByteReceiveStream | None",
        buffer: CapturedBuffer,
        source: LineSource,
    ) -> None:
        if stream is None:
            return
        try:
            while True:
                try:
                    chunk = await stream.receive(READ_CHUNK_BYTES)
                except anyio.EndOfStream:
                    return
                buffer.append(chunk)
        except (anyio.BrokenResourceError, OSError) as e:
            msg = f"Process error: failed reading {source}: {e}"
            error = StreamError(
                msg,
                program=self._request.program,
                args=self._request.args,
                source=source,
                cause=e,
            )
            self._logger.warning("stream_read_failed", source=source, error=str(e))
            self._finish(Err(error), terminate=True)

    async def _run_to_exit(self) -> None:
        async with anyio.create_task_group() as drains:
            drains.start_soon(self._drain, self._process.stdout, self._stdout, "stdout")
            drains.start_soon(self._drain, self._process.stderr, self._stderr, "stderr")

        exit_code = await self._process.wait()
        self._logger.debug("process_exited", pid=self._process.pid, exit_code=exit_code)
        result = ProcessResult(
            stdout=self._stdout.text(),
            stderr=self._stderr.text(),
            exit_code=exit_code,
            stdout_truncated=self._stdout.truncated,
            stderr_truncated=self._stderr.truncated,
        )
        self._finish(Ok(result), terminate=False)

    async def _expire(self) -> None:
        await anyio.sleep_until(self._deadline)
        request = self._request
        msg = (
            f"Process timed out after {request.timeout_ms}ms "
            f"({format_command(request.program, request.args)})"
        )
        self._logger.warning(
            "process_timed_out", pid=self._process.pid, timeout_ms=request.timeout_ms
        )
        error = ProcessTimeoutError(
            msg,
            program=request.program,
            args=request.args,
            timeout_ms=request.timeout_ms,
        )
        self._finish(Err(error), terminate=True)

    async def _watch_cancel(self, token: "CancelToken") -> None:
        await token.wait()
        self._logger.info("process_cancelled", pid=self._process.pid, reason=token.reason)
        self._finish(Err(cancelled_error(self._request)), terminate=True)

    async def _close(self) -> None:
        """Reap the child, escalating to SIGKILL, shielded from cancellation."""
        process = self._process
        grace = REAP_TIMEOUT_MS / 1000
        with anyio.CancelScope(shield=True):
            if process.returncode is None:
                _ = terminate_tree(process.pid)
                with anyio.move_on_after(grace):
                    _ = await process.wait()
            if process.returncode is None:
                self._logger.warning("process_kill_escalated", pid=process.pid)
                _ = terminate_tree(process.pid, force=True)
            with anyio.move_on_after(grace):
                await process.aclose()


def cancelled_error(request: InvocationRequest) -> ProcessCancelledError:
    token = request.cancel_token
    reason = token.reason if token is not None else None
    command = format_command(request.program, request.args)
    msg = f"Process cancelled ({command})"
    if reason:
        msg = f"{msg}: {reason}"
    return ProcessCancelledError(
        msg, program=request.program, args=request.args, reason=reason
    )


@final
class BoundedExecutor:
    """Runs short-lived programs to a single bounded outcome.

    Attributes:
        max_buffer_bytes: Capture ceiling applied to each of stdout and stderr.

    Example:
        executor = BoundedExecutor()
        result = await executor.execute(
            InvocationRequest("dcm2json", ("+ll", "input.dcm"), timeout_ms=5000)
        )
        if result.ok:
            print(result.value.stdout)
    """

    __slots__ = ("_logger", "max_buffer_bytes")

    def __init__(
        self,
        *,
        max_buffer_bytes: int = MAX_BUFFER_BYTES,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        self.max_buffer_bytes = max_buffer_bytes
        self._logger: FilteringBoundLogger = logger or get_logger()

    async def execute(self, request: InvocationRequest) -> Result[ProcessResult]:
        """Run the requested program until exit, deadline, or cancellation.

        Never raises for expected failures; they are returned as ``Err``.

        Args:
            request: What to run and how long to allow it.

        Returns:
            ``Ok(ProcessResult)`` on exit (whatever the exit code), otherwise
            ``Err`` with a ProcessTimeoutError, ProcessCancelledError,
            SpawnError or StreamError.
        """
        logger = self._logger.bind(program=request.program)
        deadline = anyio.current_time() + request.timeout_ms / 1000

        token = request.cancel_token
        if token is not None and token.cancelled:
            logger.debug("process_cancelled_before_spawn")
            return Err(cancelled_error(request))

        try:
            process = await anyio.open_process(
                request.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=request.cwd,
                env=build_env(request.env, replace=request.replace_env),
                **spawn_kwargs(),
            )
        except OSError as e:
            logger.warning("process_spawn_failed", error=str(e))
            return Err(spawn_error(request.program, request.args, e))

        logger.debug("process_spawned", pid=process.pid, args=list(request.args))
        invocation = _Invocation(
            request, process, deadline, self.max_buffer_bytes, logger
        )
        return await invocation.run()


async def execute(
    request: InvocationRequest,
    *,
    max_buffer_bytes: int = MAX_BUFFER_BYTES,
    logger: "FilteringBoundLogger | None" = None,
) -> Result[ProcessResult]:
    """Run a program to a single bounded outcome.

    Convenience wrapper around ``BoundedExecutor.execute``.
    """
    executor = BoundedExecutor(max_buffer_bytes=max_buffer_bytes, logger=logger)
    return await executor.execute(request)


async def run(  # noqa: PLR0913
    program: str,
    args: tuple[str, ...] | list[str] = (),
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout_ms: int | None = None,
    cancel_token: "CancelToken | None" = None,
    logger: "FilteringBoundLogger | None" = None,
) -> Result[ProcessResult]:
    """Build an InvocationRequest from keyword options and execute it."""
    request = InvocationRequest(
        program=program,
        args=tuple(args),
        cwd=cwd,
        env=env or {},
        cancel_token=cancel_token,
        **({"timeout_ms": timeout_ms} if timeout_ms is not None else {}),
    )
    return await execute(request, logger=logger)
