"""Console sink for supervised process output.

This module provides a LineSink that renders a supervisor's output and
lifecycle events to a rich Console.
"""

from typing import TYPE_CHECKING, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._protocol import LineSink

if TYPE_CHECKING:
    from ._events import Subscription
    from ._models import ProcessErrorEvent, ProcessLine
    from ._supervisor import ProcessSupervisor


@final
class ConsoleLineSink:
    """Line sink that writes to a console with formatted prefixes.

    Formats output as ``[name:pid] line`` with color coding:
    - stdout: Default styling
    - stderr: Dim red styling
    - Events: Styled label per channel
    """

    __slots__ = ("_console", "_event_styles", "_stderr_style", "_stdout_style")

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the sink.

        Args:
            console: Rich Console instance for output. If None, creates a new one.
        """
        self._console = console or Console()
        self._stdout_style = Style()
        self._stderr_style = Style(color="red", dim=True)
        self._event_styles: dict[str, Style] = {
            "started": Style(color="green", bold=True),
            "stopped": Style(color="yellow"),
            "error": Style(color="red", bold=True),
        }

    def write_line(self, name: str, pid: int | None, line: "ProcessLine") -> None:
        """Write a line of process output with prefix."""
        prefix = f"[{name}:{pid}]" if pid is not None else f"[{name}]"
        style = self._stderr_style if line.source == "stderr" else self._stdout_style

        text = Text()
        _ = text.append(prefix, style=Style(color="blue", bold=True))
        _ = text.append(" ")
        _ = text.append(line.text, style=style)

        self._console.print(text)

    def write_event(
        self,
        name: str,
        pid: int | None,
        event: str,
        error: "ProcessErrorEvent | None" = None,
    ) -> None:
        """Write a lifecycle event with special formatting."""
        style = self._event_styles.get(event, Style())

        text = Text()
        _ = text.append(f"[{name}]", style=Style(color="blue", bold=True))
        _ = text.append(" ")
        _ = text.append(event.upper(), style=style)

        if pid is not None:
            _ = text.append(f" (pid={pid})", style=Style(dim=True))

        if error is not None:
            _ = text.append(f" - {error.error}", style=style)

        self._console.print(text)

    def attach(
        self, supervisor: "ProcessSupervisor", name: str
    ) -> "list[Subscription]":
        """Subscribe this sink to every channel of a supervisor."""
        return attach_sink(supervisor, self, name)


def attach_sink(
    supervisor: "ProcessSupervisor", sink: LineSink, name: str
) -> "list[Subscription]":
    """Subscribe a sink to every channel of a supervisor.

    Args:
        supervisor: The supervisor to follow.
        sink: Receives each line and lifecycle event.
        name: Display name used as the line prefix.

    Returns:
        The subscriptions, so the caller can revoke them.
    """
    return [
        supervisor.on(
            "line", lambda line: sink.write_line(name, supervisor.pid, line)
        ),
        supervisor.on(
            "started", lambda: sink.write_event(name, supervisor.pid, "started")
        ),
        supervisor.on(
            "stopped", lambda: sink.write_event(name, supervisor.pid, "stopped")
        ),
        supervisor.on(
            "error",
            lambda error: sink.write_event(name, supervisor.pid, "error", error),
        ),
    ]
