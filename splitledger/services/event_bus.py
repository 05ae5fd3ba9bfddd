import inspect
from typing import Awaitable, Callable, List, Union

import structlog

from splitledger.models.events import LedgerEvent

logger = structlog.get_logger(__name__)

EventHandler = Callable[[LedgerEvent], Union[None, Awaitable[None]]]


class EventBus:
    """
    Delivers domain events to observers in subscription order.

    Handlers may be plain functions or coroutines. A failing handler is
    logged and skipped: the mutation that produced the event is already
    committed and is not rolled back.
    """

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def publish(self, event: LedgerEvent) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "event_handler_failed",
                    event_type=event.event_type,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                )
