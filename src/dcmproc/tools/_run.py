"""Run DCMTK tools through the executor and the supervisor."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from dcmproc._result import Err, Ok, Result
from dcmproc.config import Settings, get_settings
from dcmproc.process import (
    BoundedExecutor,
    InvocationRequest,
    ProcessResult,
    ProcessSupervisor,
    SupervisorConfig,
)

from ._error import create_tool_error
from ._resolve import resolve_binary

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from dcmproc.process import CancelToken, ReadyPredicate


async def run_tool(  # noqa: PLR0913
    tool_name: str,
    args: Sequence[str] = (),
    *,
    timeout_ms: int | None = None,
    cancel_token: "CancelToken | None" = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    settings: Settings | None = None,
    logger: "FilteringBoundLogger | None" = None,
) -> Result[ProcessResult]:
    """Resolve a DCMTK tool, run it, and classify a failing exit status.

    Args:
        tool_name: The DCMTK binary name (e.g. "dcmdump").
        args: Arguments passed literally to the tool.
        timeout_ms: Deadline; defaults to ``process.default_timeout_ms``.
        cancel_token: Optional token that aborts the run.
        cwd: Working directory for the tool.
        env: Environment overlay.
        settings: Settings to use instead of the process-wide ones.
        logger: Structured logger.

    Returns:
        ``Ok(ProcessResult)`` when the tool exits with status 0, otherwise
        ``Err`` with a ToolError, BinaryNotFoundError or any executor error.
    """
    settings = settings if settings is not None else get_settings()
    resolved = resolve_binary(tool_name, settings=settings)
    if isinstance(resolved, Err):
        return resolved
    binary = resolved.value

    request = InvocationRequest(
        program=str(binary),
        args=tuple(args),
        cwd=cwd,
        env=env or {},
        timeout_ms=timeout_ms or settings.process.default_timeout_ms,
        cancel_token=cancel_token,
    )
    executor = BoundedExecutor(
        max_buffer_bytes=settings.process.max_buffer_bytes, logger=logger
    )
    result = await executor.execute(request)

    match result:
        case Ok(ProcessResult(exit_code=0)):
            return result
        case Ok(output):
            return Err(
                create_tool_error(tool_name, request.args, output.exit_code, output.stderr)
            )
        case Err():
            return result


def create_server(  # noqa: PLR0913
    tool_name: str,
    args: Sequence[str] = (),
    *,
    ready: "ReadyPredicate | None" = None,
    start_timeout_ms: int | None = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    settings: Settings | None = None,
    logger: "FilteringBoundLogger | None" = None,
) -> Result[ProcessSupervisor]:
    """Build a supervisor for a long-running DCMTK tool such as dcmrecv.

    The supervisor is returned unstarted; enter it with ``async with`` and
    call ``start()``.

    Example:
        match create_server("dcmrecv", ["-v", "11112"], ready=lambda l: "listening" in l):
            case Ok(server):
                async with server:
                    await server.start()
            case Err(error):
                print(error)
    """
    settings = settings if settings is not None else get_settings()
    resolved = resolve_binary(tool_name, settings=settings)
    if isinstance(resolved, Err):
        return resolved
    binary = resolved.value

    config = SupervisorConfig(
        program=str(binary),
        args=tuple(args),
        cwd=cwd,
        env=env or {},
        ready=ready,
        start_timeout_ms=start_timeout_ms or settings.process.start_timeout_ms,
        drain_timeout_ms=settings.process.drain_timeout_ms,
    )
    return Ok(ProcessSupervisor(config, logger=logger))
