"""
Handler for InvoicePaid events.

When an invoice settles, each booking-linked line item records what its
booking received, routed to the booking's vendor (to_platform = false).
The invoice discount is shared across all items in proportion to their
line totals, so the bookings together never receive more than was
collected. Split payouts read these rows per booking.
"""

import logging
from typing import Callable

from core.events import InvoicePaid
from core.models import Invoice, InvoiceLineItem, PaymentCreate, PaymentStatus, PaymentType

logger = logging.getLogger(__name__)


def allocate(invoice: Invoice, line_items: list[InvoiceLineItem]) -> list[tuple[InvoiceLineItem, int]]:
    """
    Booking items with their share of the collected total.

    Each share is the line total scaled by total_amount / subtotal, floored.
    The last booking item takes the rounding remainder, so the shares add up
    to the booking items' exact portion of the total.
    """
    subtotal = sum(item.line_total for item in line_items)
    booked = [item for item in line_items if item.is_booking_linked and item.line_total > 0]
    if not booked or subtotal <= 0:
        return []

    collected = invoice.total_amount
    target = sum(item.line_total for item in booked) * collected // subtotal
    shares = [item.line_total * collected // subtotal for item in booked]
    shares[-1] = target - sum(shares[:-1])
    return list(zip(booked, shares))


def handle_invoice_paid(payment_service) -> Callable:
    """
    Factory that returns an InvoicePaid handler.

    Args:
        payment_service: PaymentService instance

    Returns:
        Handler callable that allocates the settled invoice to its bookings
    """

    def handler(event: InvoicePaid):
        invoice = event.invoice

        for item, amount in allocate(invoice, event.line_items):
            if amount <= 0:
                continue

            payment_service.record(PaymentCreate(
                booking_id=item.booking_id,
                amount=amount,
                status=PaymentStatus.SUCCEEDED,
                payment_type=PaymentType.DEPOSIT if invoice.deposit_percentage else PaymentType.OTHER,
                stripe_payment_id=invoice.stripe_payment_intent_id,
                to_platform=False,
            ))
            logger.info(f"Allocated {amount} to booking {item.booking_id} from invoice {invoice.id}")

    return handler
