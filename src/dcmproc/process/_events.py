"""Named-channel event dispatcher for supervised processes.

Subscribers register a handler on a channel and receive a revocable
``Subscription``. Disposing the dispatcher revokes every outstanding
subscription so no callback keeps a dead process alive.
"""

from collections.abc import Callable
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self, final

from dcmproc.utils import get_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

Handler = Callable[..., object]


@final
class Subscription:
    """Handle for one registered handler.

    Revoking is idempotent. A subscription can be used as a context manager
    to revoke it when the block exits.
    """

    __slots__ = ("_dispatcher", "channel", "handler")

    def __init__(
        self,
        dispatcher: "EventDispatcher",
        channel: str,
        handler: Handler,
    ) -> None:
        self._dispatcher: EventDispatcher | None = dispatcher
        self.channel = channel
        self.handler = handler

    @property
    def active(self) -> bool:
        """Return True until the subscription is revoked."""
        return self._dispatcher is not None

    def revoke(self) -> None:
        """Stop delivering events to the handler."""
        dispatcher, self._dispatcher = self._dispatcher, None
        if dispatcher is not None:
            dispatcher._remove(self)  # noqa: SLF001

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.revoke()


@final
class EventDispatcher:
    """Dispatches events to handlers registered per channel name.

    Handlers run synchronously, in subscription order. A handler that raises
    is logged and skipped; the remaining handlers still run.
    """

    __slots__ = ("_channels", "_logger", "_subscriptions")

    def __init__(
        self,
        channels: tuple[str, ...],
        *,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            channels: The channel names this dispatcher accepts.
            logger: Logger for handler failures.
        """
        self._channels = frozenset(channels)
        self._subscriptions: dict[str, list[Subscription]] = {
            channel: [] for channel in channels
        }
        self._logger: FilteringBoundLogger = logger or get_logger()

    def subscribe(self, channel: str, handler: Handler) -> Subscription:
        """Register a handler on a channel.

        Raises:
            ValueError: If the channel is unknown.
        """
        self._check_channel(channel)
        subscription = Subscription(self, channel, handler)
        self._subscriptions[channel].append(subscription)
        return subscription

    def emit(self, channel: str, *payload: Any) -> None:  # pyright: ignore[reportExplicitAny, reportAny]
        """Deliver an event to every handler on the channel."""
        self._check_channel(channel)
        # Snapshot so handlers may revoke or subscribe while dispatching
        for subscription in tuple(self._subscriptions[channel]):
            if not subscription.active:
                continue
            try:
                subscription.handler(*payload)
            except Exception:  # noqa: BLE001
                self._logger.exception(
                    "event_handler_failed",
                    channel=channel,
                    handler=getattr(subscription.handler, "__qualname__", None),
                )

    def count(self, channel: str) -> int:
        """Return the number of active handlers on a channel."""
        self._check_channel(channel)
        return len(self._subscriptions[channel])

    def clear(self) -> None:
        """Revoke every outstanding subscription."""
        for subscriptions in self._subscriptions.values():
            for subscription in tuple(subscriptions):
                subscription.revoke()

    def _remove(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.channel, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)

    def _check_channel(self, channel: str) -> None:
        if channel not in self._channels:
            msg = f"Unknown event channel '{channel}'"
            raise ValueError(msg)
