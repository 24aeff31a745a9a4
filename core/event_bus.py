"""
Event bus for billing domain events.

Synchronous in-process pub/sub. Handlers run immediately in the publisher's
thread, after the publishing service has committed its write. Handler errors
are logged and never reach the publisher, so a failed side effect (for example
booking allocation) cannot undo a committed invoice transition.
"""

import logging
from collections import defaultdict
from typing import Callable

from core.events import BillingEvent

logger = logging.getLogger(__name__)

Handler = Callable[[BillingEvent], None]


class EventBus:
    """
    Subscribe by event class name, publish by event instance.

    Usage:
        bus.subscribe("InvoicePaid", handle_invoice_paid(payment_service))
        bus.publish(InvoicePaid.create(invoice=invoice, line_items=items))
    """

    def __init__(self):
        self._subscribers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: str, callback: Handler) -> None:
        """Register a handler; handlers run in subscription order."""
        self._subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: str, callback: Handler) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        handlers = self._subscribers.get(event_type, [])
        if callback not in handlers:
            return False
        handlers.remove(callback)
        return True

    def has_subscribers(self, event_type: str) -> bool:
        return bool(self._subscribers.get(event_type))

    def publish(self, event: BillingEvent) -> None:
        event_type = type(event).__name__

        for callback in list(self._subscribers.get(event_type, [])):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
