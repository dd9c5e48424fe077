"""Incremental line splitting for decoded process output."""

from typing import final


@final
class LineSplitter:
    """Splits a stream of text chunks into complete lines.

    Lines end at ``\\n``; a trailing ``\\r`` is stripped so CRLF output
    yields the same lines as LF output. A partial line is held until its
    terminator arrives or ``flush()`` is called at end of stream.
    """

    __slots__ = ("_pending",)

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        """Return the buffered partial line."""
        return self._pending

    def feed(self, chunk: str) -> list[str]:
        """Add a chunk and return every line it completes, in order."""
        *lines, self._pending = (self._pending + chunk).split("\n")
        return [_strip_cr(line) for line in lines]

    def flush(self) -> str | None:
        """Return the partial line left at end of stream, if any."""
        if not self._pending:
            return None
        line, self._pending = self._pending, ""
        return _strip_cr(line)


def _strip_cr(line: str) -> str:
    return line.removesuffix("\r")
