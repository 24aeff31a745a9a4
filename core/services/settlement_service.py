"""
Settlement service: card payment of an invoice through Stripe.

The public payment page identifies an invoice only by its payment token.
Paying creates a PaymentIntent for the remaining balance and confirms it with
the payer's tokenized card. The invoice becomes paid only when Stripe's
payment_intent.succeeded webhook arrives, never from the synchronous reply.
"""

import logging
from contextlib import nullcontext
from typing import Any
from uuid import UUID

from clients.stripe_client import PaymentDeclinedError, PaymentGatewayClient, PaymentIntentResult
from core.exceptions import InvalidStatusTransitionError, PaymentFailedError
from core.models import Invoice, InvoiceStatus
from core.services.invoice_service import InvoiceService
from core.submission_guard import SubmissionGuard

logger = logging.getLogger(__name__)


class SettlementService:
    """Public payment flow and processor confirmations."""

    def __init__(
        self,
        invoices: InvoiceService,
        gateway: PaymentGatewayClient,
        submission_guard: SubmissionGuard | None = None,
    ):
        self.invoices = invoices
        self.gateway = gateway
        self.submission_guard = submission_guard

    def _by_token(self, payment_token: str) -> Invoice:
        invoice = self.invoices.get_by_token(payment_token)
        if invoice is None:
            raise ValueError("Invoice not found")
        return invoice

    def get_payment_summary(self, payment_token: str) -> dict[str, Any]:
        """What the payer sees before paying. Recipient ids and routing stay private."""
        invoice = self._by_token(payment_token)
        line_items = self.invoices.get_line_items(invoice.id)

        return {
            "invoice_id": str(invoice.id),
            "status": invoice.status.value,
            "total_amount": invoice.total_amount,
            "deposit_amount": invoice.deposit_amount,
            "remaining_balance": invoice.remaining_balance,
            "line_items": [
                {
                    "type": item.type.value,
                    "description": item.custom_description,
                    "quantity": item.quantity,
                    "price": item.custom_price,
                }
                for item in line_items
            ],
        }

    def pay(self, payment_token: str, payment_method_id: str) -> dict[str, Any]:
        """
        Charge the remaining balance to a tokenized card.

        A payment token is claimed for the whole attempt, so a second submit
        while one is in flight or after one went through is rejected. The
        claim is released when the attempt fails. Intent creation is keyed on
        the invoice and the balance, so a retried create returns the same
        intent from Stripe.

        Returns:
            invoice_id, payment_intent_id, status and amount of the confirmed intent

        Raises:
            ValueError: Unknown token or nothing left to pay
            DuplicateSubmissionError: A payment for this token is in flight or done
            InvalidStatusTransitionError: Invoice not in sent status
            PaymentFailedError: Card declined or intent did not succeed
            PaymentGatewayError: Stripe unreachable while creating the intent
        """
        invoice = self._by_token(payment_token)
        if invoice.status != InvoiceStatus.SENT:
            raise InvalidStatusTransitionError(invoice.id, invoice.status.value, "pay")
        if invoice.remaining_balance <= 0:
            raise ValueError(f"Invoice {invoice.id} has no balance due")

        guard = self.submission_guard
        with guard.hold(f"pay:{payment_token}") if guard else nullcontext():
            result = self._charge(invoice, payment_method_id)

        logger.info(f"Payment intent {result.id} {result.status} for invoice {invoice.id}")
        return {
            "invoice_id": str(invoice.id),
            "payment_intent_id": result.id,
            "status": result.status,
            "amount": result.amount,
        }

    def _charge(self, invoice: Invoice, payment_method_id: str) -> PaymentIntentResult:
        intent = self.gateway.create_payment_intent(
            amount_cents=invoice.remaining_balance,
            metadata={
                "invoice_id": str(invoice.id),
                "payment_token": invoice.payment_token,
            },
            transfer_group=f"invoice_{invoice.id}",
            idempotency_key=f"invoice_{invoice.id}_{invoice.remaining_balance}",
        )
        self.invoices.attach_payment_intent(invoice.id, intent.id)

        try:
            result = self.gateway.confirm_payment_intent(intent.id, payment_method_id)
        except PaymentDeclinedError as e:
            raise PaymentFailedError(str(e))

        if result.status == "requires_action":
            raise PaymentFailedError("card requires additional authentication")
        if not result.succeeded and result.status != "processing":
            raise PaymentFailedError(result.failure_reason or f"payment {result.status}")
        return result

    def handle_webhook(self, payload: bytes, signature: str) -> str:
        """
        Verify and apply a Stripe webhook. Returns the event type.

        Raises:
            ValueError: Signature or payload invalid
        """
        event = self.gateway.construct_event(payload, signature)
        event_type = event["type"]
        intent = event["data"]["object"]

        if event_type == "payment_intent.succeeded":
            invoice_id = (intent.get("metadata") or {}).get("invoice_id")
            if not invoice_id:
                logger.warning(f"Intent {intent['id']} succeeded without an invoice_id")
                return event_type
            amount = intent.get("amount_received") or intent["amount"]
            self.invoices.mark_paid(UUID(invoice_id), intent["id"], amount)

        elif event_type == "payment_intent.payment_failed":
            error = intent.get("last_payment_error") or {}
            logger.warning(
                f"Payment intent {intent['id']} failed: {error.get('message', 'unknown reason')}"
            )

        else:
            logger.debug(f"Ignoring webhook event {event_type}")

        return event_type
