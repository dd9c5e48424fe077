"""Cooperative cancellation token for process invocations."""

from typing import final

import anyio


@final
class CancelToken:
    """Externally triggerable, one-shot cancellation signal.

    A token can be cancelled at any time, including before the invocation it
    guards is submitted, in which case the invocation never spawns. Repeated
    ``cancel()`` calls are no-ops; the first reason wins.

    The token is bound to the event loop of its first waiter and must be
    cancelled from that loop's thread.
    """

    __slots__ = ("_cancelled", "_event", "_reason")

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: str | None = None
        self._event: anyio.Event | None = None

    @property
    def cancelled(self) -> bool:
        """Return True once cancel() has been called."""
        return self._cancelled

    @property
    def reason(self) -> str | None:
        """Return the reason given to the first cancel() call, if any."""
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Cancel the token, waking every waiter."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Wait until the token is cancelled."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = anyio.Event()
        await self._event.wait()
