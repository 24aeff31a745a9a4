"""
Domain events for billing.

Immutable event objects that represent invoice state changes. A service
publishes what happened; handlers react without the publisher knowing who
is listening.

Events carry the full domain object so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class BillingEvent:
    """Base class for all billing domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class InvoiceEvent(BillingEvent):
    """Events related to invoice lifecycle."""
    pass


@dataclass(frozen=True)
class InvoiceCreated(InvoiceEvent):
    """A draft invoice and its line items were committed."""
    invoice: Any = None  # Invoice - using Any to avoid circular import
    line_items: tuple = ()

    @classmethod
    def create(cls, invoice: Any, line_items: list | tuple = ()) -> "InvoiceCreated":
        return cls(invoice=invoice, line_items=tuple(line_items))


@dataclass(frozen=True)
class InvoiceSent(InvoiceEvent):
    """Invoice email was dispatched (first send or resend)."""
    invoice: Any = None
    resend: bool = False

    @classmethod
    def create(cls, invoice: Any, resend: bool = False) -> "InvoiceSent":
        return cls(invoice=invoice, resend=resend)


@dataclass(frozen=True)
class InvoicePaid(InvoiceEvent):
    """Remaining balance settled; invoice is now paid."""
    invoice: Any = None
    line_items: tuple = ()

    @classmethod
    def create(cls, invoice: Any, line_items: list | tuple = ()) -> "InvoicePaid":
        return cls(invoice=invoice, line_items=tuple(line_items))
