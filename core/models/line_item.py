"""Invoice line item models.

Prices are cents. `custom_price` holds the unit price for every item type:
typed in for custom charges, copied from the catalog or booking otherwise.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class LineItemType(str, Enum):
    """Which reference field of a line item is meaningful."""

    SERVICE_PACKAGE = "service_package"
    STORE_PRODUCT = "store_product"
    CUSTOM = "custom"


class LineItemDraft(BaseModel):
    """A line item being composed. `id` is set only for items already stored."""

    id: UUID | None = None
    type: LineItemType
    service_package_id: UUID | None = None
    store_product_id: UUID | None = None
    booking_id: UUID | None = None
    custom_description: str = Field("", max_length=500)
    custom_price: int = Field(0, ge=0)
    quantity: int = Field(1, ge=1)
    vendor_id: UUID | None = None
    stripe_account_id: str | None = None
    from_booking: bool = False

    @property
    def is_booking_linked(self) -> bool:
        return self.type == LineItemType.SERVICE_PACKAGE and self.booking_id is not None

    @property
    def holds_booking_slot(self) -> bool:
        """Booking-linked, or a booking selection still waiting for its booking."""
        return self.is_booking_linked or self.from_booking

    @property
    def line_total(self) -> int:
        return self.custom_price * self.quantity


class InvoiceLineItem(BaseModel):
    """Full line item entity as stored."""

    id: UUID
    invoice_id: UUID
    type: LineItemType
    service_package_id: UUID | None = None
    store_product_id: UUID | None = None
    booking_id: UUID | None = None
    custom_description: str | None = None
    custom_price: int
    quantity: int
    vendor_id: UUID | None = None
    stripe_account_id: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_booking_linked(self) -> bool:
        return self.type == LineItemType.SERVICE_PACKAGE and self.booking_id is not None

    @property
    def line_total(self) -> int:
        return self.custom_price * self.quantity

    def to_draft(self) -> LineItemDraft:
        """Editable copy of a stored item."""
        return LineItemDraft(
            id=self.id,
            type=self.type,
            service_package_id=self.service_package_id,
            store_product_id=self.store_product_id,
            booking_id=self.booking_id,
            custom_description=self.custom_description or "",
            custom_price=self.custom_price,
            quantity=self.quantity,
            vendor_id=self.vendor_id,
            stripe_account_id=self.stripe_account_id,
            from_booking=self.booking_id is not None,
        )
