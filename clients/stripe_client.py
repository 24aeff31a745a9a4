"""
Stripe payment gateway client.

Creates and confirms PaymentIntents for invoice settlement and verifies
webhook signatures. Amounts are integer cents, matching invoice storage.
"""

import json
import logging
from dataclasses import dataclass

import stripe

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Stripe call failed for a reason other than the card being declined."""


class PaymentDeclinedError(PaymentGatewayError):
    """The processor refused the charge. Message is safe to show the payer."""


@dataclass(frozen=True)
class PaymentIntentResult:
    """Outcome of a create/confirm call."""

    id: str
    status: str
    amount: int
    client_secret: str | None = None
    failure_reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


def _to_result(intent) -> PaymentIntentResult:
    last_error = getattr(intent, "last_payment_error", None)
    return PaymentIntentResult(
        id=intent.id,
        status=intent.status,
        amount=intent.amount,
        client_secret=getattr(intent, "client_secret", None),
        failure_reason=getattr(last_error, "message", None) if last_error else None,
    )


class PaymentGatewayClient:
    """Stripe operations used by invoice settlement."""

    def __init__(self, secret_key: str, webhook_secret: str, currency: str = "usd"):
        if not secret_key:
            raise ValueError("secret_key is required")
        if not webhook_secret:
            raise ValueError("webhook_secret is required")

        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self.currency = currency

    def create_payment_intent(
        self,
        amount_cents: int,
        metadata: dict[str, str],
        transfer_group: str | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentIntentResult:
        """Create a card PaymentIntent for the given amount."""
        params = {
            "amount": amount_cents,
            "currency": self.currency,
            "payment_method_types": ["card"],
            "metadata": metadata,
            "api_key": self._secret_key,
        }
        if transfer_group:
            params["transfer_group"] = transfer_group
        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        try:
            intent = stripe.PaymentIntent.create(**params)
        except stripe.StripeError as e:
            logger.error(f"PaymentIntent creation failed: {e}")
            raise PaymentGatewayError(str(e.user_message or e))

        return _to_result(intent)

    def confirm_payment_intent(self, intent_id: str, payment_method_id: str) -> PaymentIntentResult:
        """
        Confirm an intent with a tokenized payment method.

        Raises:
            PaymentDeclinedError: Card declined or authentication failed
            PaymentGatewayError: Any other Stripe failure
        """
        try:
            intent = stripe.PaymentIntent.confirm(
                intent_id,
                payment_method=payment_method_id,
                api_key=self._secret_key,
            )
        except stripe.CardError as e:
            logger.warning(f"Card declined for {intent_id}: {e.user_message}")
            raise PaymentDeclinedError(e.user_message or "Card declined")
        except stripe.StripeError as e:
            logger.error(f"PaymentIntent confirmation failed for {intent_id}: {e}")
            raise PaymentGatewayError(str(e.user_message or e))

        return _to_result(intent)

    def construct_event(self, payload: bytes, signature: str) -> dict:
        """
        Verify a webhook signature and return the event as a plain dict.

        Raises:
            ValueError: Invalid signature or payload
        """
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError:
            raise ValueError("Invalid webhook signature")

        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            raise ValueError("Invalid webhook payload")
