"""Protocol definitions for consumers of supervised process output.

Event handlers run synchronously on the event loop, so sinks are plain
callables rather than coroutines.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ._models import ProcessErrorEvent, ProcessLine


@runtime_checkable
class LineSink(Protocol):
    """Protocol for consuming the output and lifecycle of a named process.

    LineSinks can format, store, or display what a supervisor publishes.
    """

    def write_line(self, name: str, pid: int | None, line: "ProcessLine") -> None:
        """Write one output line.

        Args:
            name: Display name of the process.
            pid: Process ID, or None if not spawned.
            line: The output line and the stream it came from.
        """
        ...

    def write_event(
        self,
        name: str,
        pid: int | None,
        event: str,
        error: "ProcessErrorEvent | None" = None,
    ) -> None:
        """Write a lifecycle event.

        Args:
            name: Display name of the process.
            pid: Process ID, or None if not spawned.
            event: Channel name (``started``, ``stopped`` or ``error``).
            error: Error payload for the ``error`` channel.
        """
        ...
