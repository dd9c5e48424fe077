"""Readiness-gated supervisor for long-lived programs.

This module provides the ProcessSupervisor class that spawns a program
meant to run indefinitely (for example a DICOM listener), watches its
output for a readiness line, republishes every output line as an event,
and tears the process tree down on stop.
"""

import subprocess
from types import TracebackType
from typing import TYPE_CHECKING, Literal, Self, final, overload

import anyio
import anyio.abc
from anyio.streams.text import TextReceiveStream

from dcmproc._result import Err, Ok, Result
from dcmproc.exceptions import (
    AlreadyStartedError,
    StartupAbortedError,
    StartupTimeoutError,
    StreamError,
)
from dcmproc.utils import get_logger

from ._events import EventDispatcher, Subscription
from ._executor import spawn_error
from ._lines import LineSplitter
from ._models import (
    LineSource,
    ProcessErrorEvent,
    ProcessLine,
    ProcessState,
    SupervisorConfig,
)
from ._tree import build_env, spawn_kwargs, terminate_tree

if TYPE_CHECKING:
    from collections.abc import Callable

    from anyio.abc import ByteReceiveStream
    from structlog.typing import FilteringBoundLogger

EventChannel = Literal["started", "stopped", "line", "error"]

CHANNELS: tuple[EventChannel, ...] = ("started", "stopped", "line", "error")


@final
class ProcessSupervisor:
    """Manages the lifecycle of one long-running external program.

    The supervisor is single-use: it spawns at most one process over its
    lifetime. It moves ``IDLE -> RUNNING -> STOPPED`` or ``IDLE -> STOPPED``;
    ``STOPPED`` is terminal.

    The supervisor must be entered with ``async with``: the block owns the
    tasks that pump output and monitor the process, and leaving it stops the
    process tree, waits for it to be reaped and revokes all subscriptions,
    on every exit path.

    Example:
        config = SupervisorConfig(
            program="/usr/local/bin/dcmrecv",
            args=("--config-file", "storescp.cfg", "11112"),
            ready=lambda line: "listening" in line,
        )
        async with ProcessSupervisor(config) as server:
            server.on("line", lambda line: print(line.source, line.text))
            result = await server.start()
            if result.ok:
                await server.wait()
    """

    __slots__ = (
        "_entered",
        "_events",
        "_logger",
        "_process",
        "_ready_event",
        "_returncode",
        "_spawn_attempted",
        "_started",
        "_startup_outcome",
        "_state",
        "_stopped",
        "_task_group",
        "_exited",
        "config",
    )

    def __init__(
        self,
        config: SupervisorConfig,
        *,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            config: What to run and how to detect readiness.
            logger: Structured logger. Uses the package default if None.
        """
        self.config = config
        self._logger: FilteringBoundLogger = (logger or get_logger()).bind(
            program=config.program
        )
        self._events = EventDispatcher(CHANNELS, logger=self._logger)
        self._state = ProcessState.IDLE
        self._process: anyio.abc.Process | None = None
        self._returncode: int | None = None
        self._task_group: anyio.abc.TaskGroup | None = None
        self._entered = False
        self._spawn_attempted = False
        self._started = False
        self._stopped = False
        self._startup_outcome: Result[None] | None = None
        self._ready_event: anyio.Event | None = None
        self._exited: anyio.Event | None = None

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ProcessState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Return True while the process is spawned, ready and not stopped."""
        return self._state == ProcessState.RUNNING

    @property
    def pid(self) -> int | None:
        """Return the OS process ID once spawned, None otherwise."""
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        """Return the exit status once the process has been reaped."""
        return self._returncode

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    @overload
    def on(
        self, channel: Literal["started", "stopped"], handler: "Callable[[], object]"
    ) -> Subscription: ...

    @overload
    def on(
        self, channel: Literal["line"], handler: "Callable[[ProcessLine], object]"
    ) -> Subscription: ...

    @overload
    def on(
        self, channel: Literal["error"], handler: "Callable[[ProcessErrorEvent], object]"
    ) -> Subscription: ...

    def on(self, channel: EventChannel, handler: "Callable[..., object]") -> Subscription:
        """Subscribe a handler to an event channel.

        Channels:
            started: The process became ready (no payload).
            stopped: The process was stopped or exited (no payload).
            line: One output line (``ProcessLine``).
            error: A failure while supervising (``ProcessErrorEvent``).

        Returns:
            A Subscription whose ``revoke()`` removes the handler.
        """
        return self._events.subscribe(channel, handler)

    # -------------------------------------------------------------------------
    # Scoped lifetime
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        if self._entered:
            msg = "ProcessSupervisor can only be entered once"
            raise RuntimeError(msg)
        self._entered = True
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        self.stop()
        task_group, self._task_group = self._task_group, None
        try:
            if task_group is None:  # pragma: no cover - set by __aenter__
                return None
            return await task_group.__aexit__(exc_type, exc, tb)
        finally:
            self._events.clear()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> Result[None]:
        """Spawn the process and wait until it is ready.

        Without a readiness predicate this resolves as soon as the spawn is
        confirmed. With one, it resolves when a stdout line satisfies the
        predicate, or fails when the startup deadline elapses first.

        Returns:
            ``Ok(None)`` once running, otherwise ``Err`` with an
            AlreadyStartedError, SpawnError, StartupTimeoutError or
            StartupAbortedError.

        Raises:
            RuntimeError: If called outside the ``async with`` block.
        """
        if self._state != ProcessState.IDLE or self._spawn_attempted:
            reason = (
                f'process is in state "{self._state}"'
                if self._state != ProcessState.IDLE
                else "start already in progress"
            )
            msg = f"Cannot start: {reason}"
            return Err(
                AlreadyStartedError(
                    msg, program=self.config.program, state=self._state.value
                )
            )

        task_group = self._task_group
        if task_group is None:
            msg = "ProcessSupervisor.start() must be called inside 'async with'"
            raise RuntimeError(msg)

        self._spawn_attempted = True
        config = self.config
        try:
            process = await anyio.open_process(
                config.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=config.cwd,
                env=build_env(config.env, replace=config.replace_env),
                **spawn_kwargs(),
            )
        except OSError as e:
            error = spawn_error(config.program, config.args, e)
            self._logger.warning("supervisor_spawn_failed", error=str(e))
            self._events.emit("error", ProcessErrorEvent(error=error, fatal=True))
            self._mark_stopped()
            return Err(error)

        self._process = process
        self._exited = anyio.Event()
        self._logger.info("supervisor_spawned", pid=process.pid)

        if self._stopped:
            # stop() ran while the spawn was in flight
            self._terminate(process, task_group)
            self._settle_startup(Err(self._aborted_error(None)))
        elif config.ready is None:
            self._mark_started()
        else:
            self._ready_event = anyio.Event()

        task_group.start_soon(self._monitor, process)

        if self._startup_outcome is None:
            await self._await_ready()

        outcome = self._startup_outcome
        if outcome is None:  # pragma: no cover - _await_ready always settles
            msg = "startup finished without an outcome"
            raise RuntimeError(msg)
        return outcome

    def stop(self) -> None:
        """Stop the process tree. Idempotent; never raises.

        Issues SIGTERM to the whole tree and returns without waiting for the
        process to exit. If it is still alive after ``drain_timeout_ms`` it is
        killed. The state becomes STOPPED and ``stopped`` is emitted once,
        whatever state the supervisor was in.
        """
        if self._stopped:
            return

        process = self._process
        self._mark_stopped()
        self._settle_startup(Err(self._aborted_error(None)))

        if process is None or process.returncode is not None:
            return

        self._terminate(process, self._task_group)

    async def wait(self) -> int | None:
        """Wait until the supervised process has exited and been reaped.

        Returns:
            The exit status, or None if no process was ever spawned.
        """
        if self._exited is None:
            return None
        await self._exited.wait()
        return self._returncode

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _await_ready(self) -> None:
        ready_event = self._ready_event
        timeout_ms = self.config.start_timeout_ms
        if ready_event is not None:
            with anyio.move_on_after(timeout_ms / 1000):
                await ready_event.wait()

        if self._startup_outcome is not None:
            return

        msg = f"Process failed to start within {timeout_ms}ms"
        self._logger.warning("supervisor_startup_timed_out", timeout_ms=timeout_ms)
        error = StartupTimeoutError(
            msg, program=self.config.program, timeout_ms=timeout_ms
        )
        # Settle first so stop() does not report the startup as aborted
        self._settle_startup(Err(error))
        self.stop()

    def _settle_startup(self, outcome: Result[None]) -> bool:
        if self._startup_outcome is not None:
            return False
        self._startup_outcome = outcome
        if self._ready_event is not None:
            self._ready_event.set()
        return True

    def _mark_started(self) -> None:
        if self._started or self._stopped:
            return
        self._started = True
        self._state = ProcessState.RUNNING
        self._settle_startup(Ok(None))
        self._logger.info("supervisor_started", pid=self.pid)
        self._events.emit("started")

    def _mark_stopped(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._state = ProcessState.STOPPED
        self._events.emit("stopped")

    def _aborted_error(self, exit_code: int | None) -> StartupAbortedError:
        if exit_code is None:
            msg = "Process was stopped before becoming ready"
        else:
            msg = f"Process exited with code {exit_code} before becoming ready"
        return StartupAbortedError(
            msg, program=self.config.program, exit_code=exit_code
        )

    def _on_line(self, source: LineSource, text: str) -> None:
        self._events.emit("line", ProcessLine(source=source, text=text))

        if (
            source == "stdout"
            and self._startup_outcome is None
            and not self._stopped
            and self._is_ready(text)
        ):
            self._mark_started()

    def _is_ready(self, text: str) -> bool:
        ready = self.config.ready
        if ready is None:
            return False
        try:
            return bool(ready(text))
        except Exception as e:  # noqa: BLE001
            # A failing predicate counts as no match
            self._logger.warning("supervisor_ready_check_failed", error=repr(e))
            self._events.emit("error", ProcessErrorEvent(error=e, fatal=False))
            return False

    async def _pump(
        self,
        stream: "ByteReceiveStream | None",
        source: LineSource,
        done: anyio.Event,
    ) -> None:
        if stream is None:
            done.set()
            return

        splitter = LineSplitter()
        try:
            async for chunk in TextReceiveStream(stream, errors="replace"):
                for line in splitter.feed(chunk):
                    self._on_line(source, line)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError, OSError) as e:
            msg = f"Process error: failed reading {source}: {e}"
            error = StreamError(
                msg,
                program=self.config.program,
                args=self.config.args,
                source=source,
                cause=e,
            )
            self._events.emit("error", ProcessErrorEvent(error=error, fatal=False))
        finally:
            tail = splitter.flush()
            if tail is not None:
                self._on_line(source, tail)
            done.set()

    async def _monitor(self, process: anyio.abc.Process) -> None:
        drain_s = self.config.drain_timeout_ms / 1000
        try:
            async with anyio.create_task_group() as pumps:
                stdout_done = anyio.Event()
                stderr_done = anyio.Event()
                pumps.start_soon(self._pump, process.stdout, "stdout", stdout_done)
                pumps.start_soon(self._pump, process.stderr, "stderr", stderr_done)

                _ = await process.wait()

                # Let buffered output flush unless a descendant holds the pipes
                with anyio.move_on_after(drain_s):
                    await stdout_done.wait()
                    await stderr_done.wait()
                pumps.cancel_scope.cancel()
        finally:
            with anyio.CancelScope(shield=True):
                with anyio.move_on_after(drain_s):
                    await process.aclose()
                if process.returncode is None:
                    _ = terminate_tree(process.pid, force=True)
                    with anyio.move_on_after(drain_s):
                        _ = await process.wait()
                self._on_exit(process.returncode)

    def _on_exit(self, exit_code: int | None) -> None:
        """Record the exit status and release waiters, on every exit path."""
        self._returncode = exit_code
        self._logger.info("supervisor_process_exited", exit_code=exit_code)
        self._settle_startup(Err(self._aborted_error(exit_code)))
        self._mark_stopped()
        if self._exited is not None:
            self._exited.set()

    def _terminate(
        self,
        process: anyio.abc.Process,
        task_group: anyio.abc.TaskGroup | None,
    ) -> None:
        """Send SIGTERM to the tree and schedule the SIGKILL escalation."""
        self._logger.info("supervisor_stopping", pid=process.pid)
        try:
            _ = terminate_tree(process.pid)
        except OSError as e:
            self._logger.debug("supervisor_terminate_failed", error=str(e))

        if task_group is not None:
            task_group.start_soon(self._escalate, process)

    async def _escalate(self, process: anyio.abc.Process) -> None:
        with anyio.move_on_after(self.config.drain_timeout_ms / 1000):
            _ = await process.wait()
            return
        self._logger.warning("supervisor_kill_escalated", pid=process.pid)
        _ = terminate_tree(process.pid, force=True)
