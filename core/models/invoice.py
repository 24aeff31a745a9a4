"""Invoice domain models.

All amounts are stored in cents (integer) to avoid floating point issues.
$10.00 = 1000 cents. Percentages are whole points (25 = 25%).
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from core.models.line_item import LineItemDraft


class RecipientType(str, Enum):
    """Who the invoice is billed to."""

    COUPLE = "couple"
    VENDOR = "vendor"


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status. PAID is terminal."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"


class DiscountMode(str, Enum):
    FLAT = "flat"
    PERCENTAGE = "percentage"


class FlatDiscount(BaseModel):
    """Fixed amount off the subtotal."""

    mode: Literal["flat"] = "flat"
    amount_cents: int = Field(0, ge=0)


class PercentageDiscount(BaseModel):
    """Whole-point percentage off the subtotal. Values above 100 clamp to the subtotal."""

    mode: Literal["percentage"] = "percentage"
    percentage: int = Field(0, ge=0)


Discount = Annotated[Union[FlatDiscount, PercentageDiscount], Field(discriminator="mode")]


def discount_from_columns(discount_amount: int, discount_percentage: int) -> FlatDiscount | PercentageDiscount:
    """Read the two stored discount columns back into one discount."""
    if discount_percentage:
        return PercentageDiscount(percentage=discount_percentage)
    return FlatDiscount(amount_cents=discount_amount or 0)


def discount_to_columns(discount: FlatDiscount | PercentageDiscount) -> tuple[int, int]:
    """(discount_amount, discount_percentage) with the inactive column zeroed."""
    if isinstance(discount, PercentageDiscount):
        return 0, discount.percentage
    return discount.amount_cents, 0


class InvoiceTotals(BaseModel):
    """Derived amounts for one set of line items, discount and deposit."""

    subtotal: int
    discount: int
    total: int
    deposit: int
    remaining: int

    model_config = {"frozen": True}


class InvoiceCreate(BaseModel):
    """
    Data required to create an invoice.

    Recipient ids may be missing here; the composition rules report that
    with an operator-facing message. A recipient id that contradicts the
    recipient type is rejected outright.
    """

    recipient_type: RecipientType
    couple_id: UUID | None = None
    vendor_id: UUID | None = None
    line_items: list[LineItemDraft] = Field(default_factory=list)
    discount: Discount = Field(default_factory=FlatDiscount)
    deposit_percentage: int = Field(0, ge=0, le=100)

    @model_validator(mode="after")
    def check_recipient_matches_type(self) -> "InvoiceCreate":
        if self.recipient_type == RecipientType.COUPLE and self.vendor_id is not None:
            raise ValueError("Couple invoices cannot carry a vendor_id")
        if self.recipient_type == RecipientType.VENDOR and self.couple_id is not None:
            raise ValueError("Vendor invoices cannot carry a couple_id")
        return self

    @property
    def recipient_id(self) -> UUID | None:
        if self.recipient_type == RecipientType.COUPLE:
            return self.couple_id
        return self.vendor_id


class InvoiceLineItemsUpdate(BaseModel):
    """Replacement contents for an unpaid invoice. Items with an id are kept and updated."""

    line_items: list[LineItemDraft] = Field(default_factory=list)
    discount: Discount = Field(default_factory=FlatDiscount)
    deposit_percentage: int = Field(0, ge=0, le=100)


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    recipient_type: RecipientType
    couple_id: UUID | None = None
    vendor_id: UUID | None = None
    total_amount: int
    remaining_balance: int
    discount_amount: int = 0
    discount_percentage: int = 0
    deposit_percentage: int = 0
    deposit_amount: int = 0
    status: InvoiceStatus
    payment_token: str
    stripe_payment_intent_id: str | None = None
    sent_at: datetime | None = None
    paid_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def discount(self) -> FlatDiscount | PercentageDiscount:
        return discount_from_columns(self.discount_amount, self.discount_percentage)

    @property
    def recipient_id(self) -> UUID | None:
        if self.recipient_type == RecipientType.COUPLE:
            return self.couple_id
        return self.vendor_id

    @property
    def is_paid(self) -> bool:
        """Whether invoice is fully paid."""
        return self.status == InvoiceStatus.PAID

    @property
    def total_amount_dollars(self) -> float:
        """Total amount in dollars for display."""
        return self.total_amount / 100
