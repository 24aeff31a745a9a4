"""Tests for billing domain events."""

from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from core.events import (
    BillingEvent,
    InvoiceCreated,
    InvoiceEvent,
    InvoicePaid,
    InvoiceSent,
)
from core.models import InvoiceStatus


@pytest.fixture
def _invoice(invoice_factory):
    return invoice_factory(status=InvoiceStatus.SENT)


class TestEventBase:
    """Every event carries an id and a timestamp."""

    def test_event_id_generated(self, _invoice):
        a = InvoiceSent.create(invoice=_invoice)
        b = InvoiceSent.create(invoice=_invoice)

        assert a.event_id != b.event_id

    def test_occurred_at_is_timezone_aware(self, _invoice):
        event = InvoiceSent.create(invoice=_invoice)

        assert isinstance(event.occurred_at, datetime)
        assert event.occurred_at.tzinfo is not None

    def test_events_are_frozen(self, _invoice):
        event = InvoiceSent.create(invoice=_invoice)

        with pytest.raises(FrozenInstanceError):
            event.resend = True

    def test_hierarchy(self, _invoice):
        event = InvoicePaid.create(invoice=_invoice)

        assert isinstance(event, InvoiceEvent)
        assert isinstance(event, BillingEvent)


class TestInvoiceEvents:

    def test_created_carries_line_items_as_tuple(self, _invoice, line_item_factory):
        items = [line_item_factory(_invoice.id), line_item_factory(_invoice.id)]

        event = InvoiceCreated.create(invoice=_invoice, line_items=items)

        assert event.invoice is _invoice
        assert event.line_items == tuple(items)

    def test_sent_defaults_to_first_send(self, _invoice):
        assert InvoiceSent.create(invoice=_invoice).resend is False
        assert InvoiceSent.create(invoice=_invoice, resend=True).resend is True

    def test_paid_without_items(self, _invoice):
        assert InvoicePaid.create(invoice=_invoice).line_items == ()
