"""Standardized errors for DCMTK tool failures."""

from collections.abc import Sequence

from dcmproc.exceptions import ToolError
from dcmproc.utils import MAX_ARGS_LENGTH, MAX_STDERR_LENGTH, truncate


def create_tool_error(
    tool_name: str,
    args: Sequence[str],
    exit_code: int,
    stderr: str,
) -> ToolError:
    """Create a ToolError for a tool that exited with a failure status.

    The message names the tool and exit code and adds the arguments and a
    stderr excerpt when they are non-empty, joined by `` | ``. Arguments are
    capped at MAX_ARGS_LENGTH characters and stderr at MAX_STDERR_LENGTH.

    Args:
        tool_name: The DCMTK binary name (e.g. "dcm2xml").
        args: The command-line arguments passed to the tool.
        exit_code: The process exit code.
        stderr: The captured stderr output.

    Returns:
        A ToolError carrying the full context.

    Example:
        >>> str(create_tool_error("dcmdump", ["in.dcm"], 1, "E: no such file\\n"))
        'dcmdump failed (exit code 1) | args: in.dcm | stderr: E: no such file'
    """
    args_str = truncate(" ".join(args), MAX_ARGS_LENGTH)
    stderr_str = truncate(stderr.strip(), MAX_STDERR_LENGTH)

    parts = [f"{tool_name} failed (exit code {exit_code})"]
    if args_str:
        parts.append(f"args: {args_str}")
    if stderr_str:
        parts.append(f"stderr: {stderr_str}")

    return ToolError(
        " | ".join(parts),
        tool_name=tool_name,
        args=tuple(args),
        exit_code=exit_code,
        stderr=stderr,
    )
