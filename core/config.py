"""Billing configuration."""

from pydantic import BaseModel, Field


class BillingConfig(BaseModel):
    """
    Non-secret billing settings.

    Secrets (Stripe keys, backend keys) come from Vault, never from here.
    """

    # Public payment links
    app_base_url: str = Field(
        default="https://app.bremembered.io",
        description="Origin of the public payment page",
    )
    payment_link_path: str = Field(
        default="/invoice-payment",
        description="Path prefix of the public payment page ('/invoice' on older links)",
    )

    currency: str = Field(
        default="usd",
        description="ISO currency code for payment intents",
        min_length=3,
        max_length=3,
    )

    max_booking_items: int = Field(
        default=3,
        description="Booking-linked line items allowed on one couple invoice",
        ge=1,
    )

    # Valkey lifetimes
    draft_ttl_hours: int = Field(
        default=24,
        description="How long an untouched invoice draft is kept",
        ge=1,
        le=720,
    )
    submission_guard_seconds: int = Field(
        default=300,
        description="How long a create submission key blocks duplicates",
        ge=10,
    )
