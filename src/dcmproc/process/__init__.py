"""Process execution and supervision.

This package runs external programs in two modes:

- Bounded execution of short-lived programs: one call, one outcome, with a
  deadline, optional cancellation, and size-capped output capture.
- Supervision of long-lived programs: spawn, wait for a readiness line,
  publish output as events, and stop the whole process tree.

Key Components:
    - InvocationRequest / ProcessResult: Executor input and output
    - BoundedExecutor, execute, run: Short-lived execution
    - CancelToken: External cancellation signal
    - SupervisorConfig / ProcessState: Supervisor configuration and states
    - ProcessSupervisor: Long-lived lifecycle manager
    - EventDispatcher / Subscription: Named-channel event delivery
    - LineSink / ConsoleLineSink / attach_sink: Output consumers
    - terminate_tree: Process-tree termination

Example:
    >>> from dcmproc.process import InvocationRequest, execute
    >>> result = await execute(InvocationRequest("dcmdump", ("image.dcm",)))
    >>> if result.ok:
    ...     print(result.value.stdout)
"""

from ._buffer import CapturedBuffer
from ._cancel import CancelToken
from ._events import EventDispatcher, Subscription
from ._executor import BoundedExecutor, execute, run
from ._lines import LineSplitter
from ._models import (
    InvocationRequest,
    LineSource,
    ProcessErrorEvent,
    ProcessLine,
    ProcessResult,
    ProcessState,
    ReadyPredicate,
    SupervisorConfig,
)
from ._output import ConsoleLineSink, attach_sink
from ._protocol import LineSink
from ._supervisor import ProcessSupervisor
from ._tree import build_env, spawn_kwargs, terminate_tree

__all__ = [
    "BoundedExecutor",
    "CancelToken",
    "CapturedBuffer",
    "ConsoleLineSink",
    "EventDispatcher",
    "InvocationRequest",
    "LineSink",
    "LineSource",
    "LineSplitter",
    "ProcessErrorEvent",
    "ProcessLine",
    "ProcessResult",
    "ProcessState",
    "ProcessSupervisor",
    "ReadyPredicate",
    "Subscription",
    "SupervisorConfig",
    "attach_sink",
    "build_env",
    "execute",
    "run",
    "spawn_kwargs",
    "terminate_tree",
]
