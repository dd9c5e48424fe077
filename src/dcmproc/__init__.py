"""dcmproc: process execution and supervision for DCMTK tool wrappers.

Example:
    >>> from dcmproc import InvocationRequest, execute
    >>> result = await execute(InvocationRequest("echoscu", ("localhost", "104")))
"""

from dcmproc._result import Err, Ok, Result
from dcmproc.exceptions import (
    AlreadyStartedError,
    BinaryNotFoundError,
    DcmprocError,
    ProcessCancelledError,
    ProcessError,
    ProcessTimeoutError,
    SpawnError,
    StartupAbortedError,
    StartupTimeoutError,
    StreamError,
    SupervisorError,
    ToolError,
)
from dcmproc.process import (
    BoundedExecutor,
    CancelToken,
    InvocationRequest,
    ProcessResult,
    ProcessState,
    ProcessSupervisor,
    SupervisorConfig,
    execute,
    run,
)

__version__ = "0.1.0"

__all__ = [
    "AlreadyStartedError",
    "BinaryNotFoundError",
    "BoundedExecutor",
    "CancelToken",
    "DcmprocError",
    "Err",
    "InvocationRequest",
    "Ok",
    "ProcessCancelledError",
    "ProcessError",
    "ProcessResult",
    "ProcessState",
    "ProcessSupervisor",
    "ProcessTimeoutError",
    "Result",
    "SpawnError",
    "StartupAbortedError",
    "StartupTimeoutError",
    "StreamError",
    "SupervisorConfig",
    "SupervisorError",
    "ToolError",
    "__version__",
    "execute",
    "run",
]
