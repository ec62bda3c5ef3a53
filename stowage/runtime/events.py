"""Synchronous bus for item lifecycle notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent")
EventHandler = Callable[[Any], None]


@dataclass(frozen=True, slots=True)
class Subscription:
    """Opaque subscription token."""

    id: int
    event_type: type


class EventBus:
    """Handlers indexed by event type; a handler also receives subclasses of its type.

    Handlers run on the publishing call, in subscription order. Commits publish
    after occupancy is updated, so handlers always see the committed state.
    """

    def __init__(self) -> None:
        self._next_id = 1
        self._handlers: dict[type, dict[int, EventHandler]] = {}

    def subscribe(self, event_type: type[TEvent], handler: Callable[[TEvent], None]) -> Subscription:
        sub_id = self._next_id
        self._next_id += 1
        self._handlers.setdefault(event_type, {})[sub_id] = handler
        return Subscription(sub_id, event_type)

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription; unknown tokens are ignored."""
        handlers = self._handlers.get(subscription.event_type)
        if handlers is None:
            return
        handlers.pop(subscription.id, None)
        if not handlers:
            del self._handlers[subscription.event_type]

    def handler_count(self, event_type: type) -> int:
        """Return how many handlers would receive an event of ``event_type``."""
        return sum(len(self._handlers.get(cls, ())) for cls in event_type.__mro__)

    def publish(self, event: object) -> int:
        """Deliver one event and return the number of invoked handlers."""
        matched = sorted(
            (sub_id, handler)
            for cls in type(event).__mro__
            for sub_id, handler in self._handlers.get(cls, {}).items()
        )
        for _, handler in matched:
            handler(event)
        logger.debug("event_published type=%s handlers=%d", type(event).__name__, len(matched))
        return len(matched)
