"""Size-capped capture buffer for process output."""

from typing import final

from dcmproc.constants import MAX_BUFFER_BYTES


@final
class CapturedBuffer:
    """Accumulates bytes from one stream up to a fixed ceiling.

    Bytes past the ceiling are dropped from the buffer only; the caller keeps
    draining the stream, so the child is never blocked or throttled.

    Attributes:
        max_bytes: Ceiling on retained bytes.
        dropped: Number of bytes received after the ceiling was reached.
    """

    __slots__ = ("_chunks", "_size", "dropped", "max_bytes")

    def __init__(self, max_bytes: int = MAX_BUFFER_BYTES) -> None:
        if max_bytes < 0:
            msg = f"max_bytes must not be negative, got {max_bytes}"
            raise ValueError(msg)
        self.max_bytes = max_bytes
        self.dropped = 0
        self._chunks: list[bytes] = []
        self._size = 0

    def __len__(self) -> int:
        return self._size

    @property
    def truncated(self) -> bool:
        """Return True if any received bytes were dropped."""
        return self.dropped > 0

    def append(self, chunk: bytes) -> None:
        """Append a chunk, keeping only the part that fits under the ceiling."""
        room = self.max_bytes - self._size
        if room >= len(chunk):
            self._chunks.append(chunk)
            self._size += len(chunk)
            return

        if room > 0:
            self._chunks.append(chunk[:room])
            self._size += room
        self.dropped += len(chunk) - max(room, 0)

    def getvalue(self) -> bytes:
        return b"".join(self._chunks)

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the retained bytes, replacing invalid sequences."""
        return self.getvalue().decode(encoding, errors="replace")
