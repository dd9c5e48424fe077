# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
"""dcmproc CLI commands.

Commands are registered on an App built by ``create_app`` and write to the
consoles it was given, so tests can capture their output.
"""

import re
import signal
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import anyio
from cyclopts import Parameter
from rich.markup import escape

from dcmproc._result import Err, Ok
from dcmproc.config import get_settings
from dcmproc.constants import IS_WINDOWS
from dcmproc.process import (
    CancelToken,
    ConsoleLineSink,
    InvocationRequest,
    LineSink,
    ProcessSupervisor,
    SupervisorConfig,
    attach_sink,
    execute,
)
from dcmproc.tools import create_server, find_dcmtk_path, resolve_binary, run_tool
from dcmproc.utils import get_logger

from ._shared import ExitCode, exit_code_for_error, exit_status, exit_with_error

if TYPE_CHECKING:
    from cyclopts import App
    from rich.console import Console

    from dcmproc._result import Result
    from dcmproc.process import ProcessResult


def register_commands(app: "App", console: "Console", error_console: "Console") -> None:
    """Register the ``exec``, ``serve`` and ``which`` commands on an app."""

    @app.command(name="exec")
    def exec_command(
        *command: Annotated[str, Parameter(allow_leading_hyphen=True)],
        timeout: Annotated[
            int | None,
            Parameter(help="Deadline in milliseconds. Defaults to the configured value."),
        ] = None,
        dcmtk: Annotated[
            bool,
            Parameter(help="Resolve the program as a DCMTK tool name."),
        ] = False,
        cwd: Annotated[
            Path | None,
            Parameter(help="Working directory for the program."),
        ] = None,
    ) -> None:
        """Run a program to completion and relay its output.

        The exit status is the program's own, 124 on timeout, 126 when the
        program cannot be executed and 127 when it does not exist.

        Args:
            command: Program followed by its arguments (use -- before options).
        """
        if not command:
            exit_with_error("No command given", ExitCode.FAILURE, console=error_console)

        program, *args = command
        settings = get_settings()
        timeout_ms = timeout or settings.process.default_timeout_ms

        result = anyio.run(_run_exec, program, tuple(args), timeout_ms, cwd, dcmtk)

        match result:
            case Ok(output):
                if output.stdout:
                    console.out(output.stdout, end="")
                if output.stderr:
                    error_console.out(output.stderr, end="")
                raise SystemExit(exit_status(output.exit_code))
            case Err(error):
                exit_with_error(
                    escape(str(error)), exit_code_for_error(error), console=error_console
                )

    @app.command(name="serve")
    def serve_command(
        *command: Annotated[str, Parameter(allow_leading_hyphen=True)],
        ready: Annotated[
            str | None,
            Parameter(help="Regular expression a stdout line must match to be ready."),
        ] = None,
        start_timeout: Annotated[
            int | None,
            Parameter(help="Readiness deadline in milliseconds."),
        ] = None,
        name: Annotated[
            str | None,
            Parameter(help="Display name used to prefix output lines."),
        ] = None,
        dcmtk: Annotated[
            bool,
            Parameter(help="Resolve the program as a DCMTK tool name."),
        ] = False,
    ) -> None:
        """Supervise a long-running program until it exits or is interrupted.

        Output lines are prefixed with the program name and PID. SIGINT and
        SIGTERM stop the whole process tree.

        Args:
            command: Program followed by its arguments (use -- before options).
        """
        if not command:
            exit_with_error("No command given", ExitCode.FAILURE, console=error_console)

        program, *args = command
        predicate = None
        if ready is not None:
            try:
                pattern = re.compile(ready)
            except re.error as e:
                exit_with_error(
                    f"Invalid --ready pattern: {e}", ExitCode.FAILURE, console=error_console
                )
            predicate = lambda line: pattern.search(line) is not None  # noqa: E731

        settings = get_settings()
        if dcmtk:
            built = create_server(
                program, args, ready=predicate, start_timeout_ms=start_timeout
            )
            if isinstance(built, Err):
                exit_with_error(
                    escape(str(built.error)),
                    exit_code_for_error(built.error),
                    console=error_console,
                )
            server = built.value
        else:
            config = SupervisorConfig(
                program=program,
                args=tuple(args),
                ready=predicate,
                start_timeout_ms=start_timeout or settings.process.start_timeout_ms,
                drain_timeout_ms=settings.process.drain_timeout_ms,
            )
            server = ProcessSupervisor(config, logger=get_logger())

        sink = ConsoleLineSink(console)
        display_name = name or Path(program).name
        code = anyio.run(_run_serve, server, sink, display_name, error_console)
        raise SystemExit(code)

    @app.command(name="which")
    def which_command(
        tool: str | None = None,
        *,
        no_cache: Annotated[
            bool,
            Parameter(help="Search again instead of using the cached result."),
        ] = False,
    ) -> None:
        """Print the DCMTK bin directory, or the full path of one tool.

        Args:
            tool: DCMTK tool name, e.g. dcmrecv.
        """
        found = (
            resolve_binary(tool)
            if tool is not None
            else find_dcmtk_path(no_cache=no_cache)
        )
        match found:
            case Ok(path):
                console.out(str(path))
                raise SystemExit(ExitCode.SUCCESS)
            case Err(error):
                exit_with_error(
                    escape(str(error)), exit_code_for_error(error), console=error_console
                )


async def _run_exec(
    program: str,
    args: tuple[str, ...],
    timeout_ms: int,
    cwd: Path | None,
    dcmtk: bool,  # noqa: FBT001
) -> "Result[ProcessResult]":
    token = CancelToken()
    async with anyio.create_task_group() as tg:
        if not IS_WINDOWS:
            tg.start_soon(_cancel_on_signal, token)
        if dcmtk:
            result = await run_tool(
                program, args, timeout_ms=timeout_ms, cancel_token=token, cwd=cwd
            )
        else:
            request = InvocationRequest(
                program=program,
                args=args,
                cwd=cwd,
                timeout_ms=timeout_ms,
                cancel_token=token,
            )
            result = await execute(
                request, max_buffer_bytes=get_settings().process.max_buffer_bytes
            )
        tg.cancel_scope.cancel()
    return result


async def _cancel_on_signal(token: CancelToken) -> None:
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for signum in signals:
            token.cancel(f"received {signal.Signals(signum).name}")
            return


async def _run_serve(
    server: ProcessSupervisor,
    sink: LineSink,
    name: str,
    error_console: "Console",
) -> int:
    interrupted = anyio.Event()

    async def stop_on_signal() -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for _ in signals:
                interrupted.set()
                server.stop()
                return

    async with server:
        _ = attach_sink(server, sink, name)
        started = await server.start()
        if isinstance(started, Err):
            error_console.print(
                f"[red]Error:[/red] {escape(str(started.error))}", highlight=False
            )
            return exit_code_for_error(started.error)

        async with anyio.create_task_group() as tg:
            if not IS_WINDOWS:
                tg.start_soon(stop_on_signal)
            returncode = await server.wait()
            tg.cancel_scope.cancel()

    if interrupted.is_set() or returncode is None:
        return ExitCode.SUCCESS
    return exit_status(returncode)
