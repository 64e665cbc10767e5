"""
Stale-view notifications for order listings and statistics.

The review service publishes an OrderEvent after every committed write;
projections that cache order data subscribe and drop their cached views.
"""
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional, Union

from app.services.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderEvent:
    """A committed change to one order"""
    kind: str  # created | approved | rejected | approved_modified
    order_id: str
    order_number: str
    status: str
    occurred_at: datetime = field(default_factory=utcnow)


Listener = Callable[[OrderEvent], Union[None, Awaitable[None]]]


class StaleNotifier:
    """In-process publisher of OrderEvents to sync or async listeners."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def publish(self, event: OrderEvent) -> int:
        """
        Deliver an event to every listener.

        The write the event describes is already committed, so a failing
        listener is logged and the remaining listeners still run.

        Returns:
            Number of listeners that handled the event without error
        """
        delivered = 0
        for listener in list(self._listeners):
            try:
                outcome: Optional[Awaitable[None]] = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Stale-view listener {getattr(listener, '__qualname__', listener)} failed "
                    f"for {event.kind} on order {event.order_number}: {e}",
                    exc_info=True,
                )
        logger.debug(f"Published {event.kind} for order {event.order_number} to {delivered} listener(s)")
        return delivered
