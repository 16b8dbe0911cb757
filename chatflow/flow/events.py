"""Typed publish/subscribe for flow lifecycle notifications.

Handlers run synchronously in subscription order. A handler that raises is
isolated at the emission boundary: the failure is logged, wrapped in a
HandlerError, and the remaining handlers still run.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from chatflow.common.exceptions import HandlerError
from chatflow.models import FlowEventType

from .context import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowEvent:
    """One lifecycle notification."""

    type: FlowEventType
    flow_id: str
    step_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)


EventHandler = Callable[[FlowEvent], Any]


class Subscription:
    """Handle returned by ``EventBus.on``; ``cancel()`` unsubscribes."""

    __slots__ = ("_bus", "event_type", "handler", "active")

    def __init__(self, bus: "EventBus", event_type: FlowEventType, handler: EventHandler):
        self._bus = bus
        self.event_type = event_type
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        self._bus.off(self.event_type, self.handler)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "active" if self.active else "cancelled"
        return f"<Subscription {self.event_type} {self.handler!r} {state}>"


class EventBus:
    """
    Event bus keyed by event type.

    Each event type maps to an insertion-ordered dict of handler ->
    subscription, so subscribing twice is idempotent and unsubscribing is
    O(1). Emission iterates over a snapshot, which makes it safe for a
    handler to unsubscribe itself or others; handlers removed mid-emission
    are skipped.
    """

    def __init__(self):
        self._handlers: dict[FlowEventType, dict[EventHandler, Subscription]] = {
            event_type: {} for event_type in FlowEventType
        }

    def on(self, event_type: FlowEventType | str, handler: EventHandler) -> Subscription:
        event_type = FlowEventType(event_type)
        handlers = self._handlers[event_type]
        existing = handlers.get(handler)
        if existing is not None:
            return existing
        subscription = Subscription(self, event_type, handler)
        handlers[handler] = subscription
        return subscription

    def off(self, event_type: FlowEventType | str, handler: EventHandler) -> bool:
        """Unsubscribe. Returns False if the handler was not subscribed."""
        subscription = self._handlers[FlowEventType(event_type)].pop(handler, None)
        if subscription is None:
            return False
        subscription.active = False
        return True

    def emit(self, event: FlowEvent) -> list[HandlerError]:
        """
        Deliver an event to every current subscriber of its type.

        Returns:
            Errors raised by handlers, already logged
        """
        errors = []
        for subscription in list(self._handlers[event.type].values()):
            if not subscription.active:
                continue
            try:
                subscription.handler(event)
            except Exception as e:
                error = HandlerError(
                    f"Error in event handler for {event.type}: {e}",
                    event_type=str(event.type),
                    handler=subscription.handler,
                    original=e,
                )
                logger.exception(error)
                errors.append(error)
        return errors

    def handler_count(self, event_type: FlowEventType | str | None = None) -> int:
        if event_type is None:
            return sum(len(h) for h in self._handlers.values())
        return len(self._handlers[FlowEventType(event_type)])

    def clear(self) -> None:
        for handlers in self._handlers.values():
            for subscription in handlers.values():
                subscription.active = False
            handlers.clear()
