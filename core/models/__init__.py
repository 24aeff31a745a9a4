"""Core domain models."""

from core.models.line_item import InvoiceLineItem, LineItemDraft, LineItemType
from core.models.invoice import (
    Discount,
    DiscountMode,
    FlatDiscount,
    Invoice,
    InvoiceCreate,
    InvoiceLineItemsUpdate,
    InvoiceStatus,
    InvoiceTotals,
    PercentageDiscount,
    RecipientType,
    discount_from_columns,
    discount_to_columns,
)
from core.models.booking import Booking
from core.models.recipient import Couple, Vendor
from core.models.catalog import CatalogLookup, ServicePackage, StoreProduct
from core.models.payment import Payment, PaymentCreate, PaymentStatus, PaymentType

__all__ = [
    # Line item
    "InvoiceLineItem", "LineItemDraft", "LineItemType",
    # Invoice
    "Discount", "DiscountMode", "FlatDiscount", "PercentageDiscount",
    "Invoice", "InvoiceCreate", "InvoiceLineItemsUpdate", "InvoiceStatus",
    "InvoiceTotals", "RecipientType", "discount_from_columns", "discount_to_columns",
    # Catalog & parties
    "Booking", "Couple", "Vendor", "CatalogLookup", "ServicePackage", "StoreProduct",
    # Payment
    "Payment", "PaymentCreate", "PaymentStatus", "PaymentType",
]
