"""Tests for EventBus."""

import logging

import pytest

from core.event_bus import EventBus
from core.events import InvoiceCreated, InvoicePaid, InvoiceSent
from core.models import InvoiceStatus


# =============================================================================
# FIXTURES: lightweight in-memory stubs, no DB needed
# =============================================================================


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def _invoice(invoice_factory):
    return invoice_factory(status=InvoiceStatus.PAID, remaining_balance=0)


# =============================================================================
# SUBSCRIBE AND PUBLISH
# =============================================================================


class TestSubscribeAndPublish:
    """Handlers receive events published under their class name."""

    def test_handler_receives_event(self, bus, _invoice):
        received = []
        bus.subscribe("InvoicePaid", received.append)

        event = InvoicePaid.create(invoice=_invoice)
        bus.publish(event)

        assert received == [event]

    def test_other_event_types_not_delivered(self, bus, _invoice):
        received = []
        bus.subscribe("InvoicePaid", received.append)

        bus.publish(InvoiceSent.create(invoice=_invoice))

        assert received == []

    def test_handlers_run_in_subscription_order(self, bus, _invoice):
        order = []
        bus.subscribe("InvoiceCreated", lambda e: order.append("first"))
        bus.subscribe("InvoiceCreated", lambda e: order.append("second"))

        bus.publish(InvoiceCreated.create(invoice=_invoice))

        assert order == ["first", "second"]

    def test_publish_without_subscribers_is_noop(self, bus, _invoice):
        bus.publish(InvoicePaid.create(invoice=_invoice))


class TestUnsubscribe:

    def test_unsubscribed_handler_not_called(self, bus, _invoice):
        received = []
        bus.subscribe("InvoicePaid", received.append)

        assert bus.unsubscribe("InvoicePaid", received.append) is True
        bus.publish(InvoicePaid.create(invoice=_invoice))

        assert received == []
        assert bus.has_subscribers("InvoicePaid") is False

    def test_unsubscribe_unknown_returns_false(self, bus):
        assert bus.unsubscribe("InvoicePaid", print) is False


class TestHandlerErrors:
    """A failing handler is logged and never reaches the publisher."""

    def test_error_logged_and_later_handlers_run(self, bus, _invoice, caplog):
        received = []

        def broken(event):
            raise RuntimeError("allocation failed")

        bus.subscribe("InvoicePaid", broken)
        bus.subscribe("InvoicePaid", received.append)

        with caplog.at_level(logging.ERROR, logger="core.event_bus"):
            bus.publish(InvoicePaid.create(invoice=_invoice))

        assert len(received) == 1
        assert "broken" in caplog.text
        assert "allocation failed" in caplog.text
