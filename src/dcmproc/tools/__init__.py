"""Shared plumbing for DCMTK tool wrappers.

Key Components:
    - find_dcmtk_path: Locate the DCMTK bin directory
    - resolve_binary: Full path of one DCMTK tool
    - create_tool_error: Uniform ToolError for failing exit statuses
    - run_tool: Resolve and run a short-lived tool
    - create_server: Build a supervisor for a listener tool
"""

from dcmproc.utils import MAX_ARGS_LENGTH, MAX_STDERR_LENGTH, truncate

from ._error import create_tool_error
from ._resolve import (
    binary_name,
    clear_dcmtk_path_cache,
    find_dcmtk_path,
    has_required_binaries,
    resolve_binary,
)
from ._run import create_server, run_tool

__all__ = [
    "MAX_ARGS_LENGTH",
    "MAX_STDERR_LENGTH",
    "binary_name",
    "clear_dcmtk_path_cache",
    "create_server",
    "create_tool_error",
    "find_dcmtk_path",
    "has_required_binaries",
    "resolve_binary",
    "run_tool",
    "truncate",
]
