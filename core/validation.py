"""
Invoice composition rules.

Shared by the in-memory composer and by invoice creation/editing, and always
run before any database write or remote call. Each failure raises
InvoiceValidationError naming the rule and, where it applies, the line item
(reported to operators as 1-based "Line item N").
"""

from typing import Sequence
from uuid import UUID

from core.exceptions import InvoiceValidationError
from core.models import (
    Booking,
    CatalogLookup,
    InvoiceCreate,
    LineItemDraft,
    LineItemType,
    RecipientType,
)

RULE_RECIPIENT_AND_ITEMS = "recipient_and_items"
RULE_BOOKING_LIMIT = "booking_item_limit"
RULE_BOOKING_ON_VENDOR = "booking_on_vendor_invoice"
RULE_MISSING_REFERENCE = "missing_reference"
RULE_CUSTOM_DESCRIPTION = "custom_description_required"
RULE_CUSTOM_PRICE = "custom_price_positive"
RULE_UNRESOLVED_REFERENCE = "unresolved_reference"
RULE_BOOKING_RECIPIENT = "booking_recipient_mismatch"
RULE_BOOKING_PRICE = "booking_price_mismatch"


def _item_error(index: int, message: str, rule: str) -> InvoiceValidationError:
    return InvoiceValidationError(f"Line item {index + 1}: {message}", rule=rule, item_index=index)


def count_booking_items(items: Sequence[LineItemDraft], exclude_index: int | None = None) -> int:
    return sum(
        1 for i, item in enumerate(items)
        if item.holds_booking_slot and i != exclude_index
    )


def ensure_booking_capacity(
    items: Sequence[LineItemDraft],
    max_booking_items: int,
    exclude_index: int | None = None,
) -> None:
    """Raise if one more booking-linked item would exceed the limit."""
    if count_booking_items(items, exclude_index) >= max_booking_items:
        raise InvoiceValidationError(
            f"A couple invoice can include at most {max_booking_items} booking line items",
            rule=RULE_BOOKING_LIMIT,
        )


def validate_composition(
    recipient_type: RecipientType,
    recipient_id: UUID | None,
    items: Sequence[LineItemDraft],
    max_booking_items: int,
) -> None:
    """Structural rules that need no catalog data."""
    if recipient_id is None or not items:
        raise InvoiceValidationError(
            "Please select a recipient and add at least one line item",
            rule=RULE_RECIPIENT_AND_ITEMS,
        )

    booking_count = count_booking_items(items)
    if recipient_type == RecipientType.VENDOR and booking_count:
        index = next(i for i, item in enumerate(items) if item.holds_booking_slot)
        raise _item_error(index, "bookings can only be invoiced to couples", RULE_BOOKING_ON_VENDOR)

    if booking_count > max_booking_items:
        raise InvoiceValidationError(
            f"A couple invoice can include at most {max_booking_items} booking line items",
            rule=RULE_BOOKING_LIMIT,
        )

    for index, item in enumerate(items):
        if item.type == LineItemType.SERVICE_PACKAGE:
            if item.service_package_id is None and item.booking_id is None:
                raise _item_error(index, "select a service package or booking", RULE_MISSING_REFERENCE)
        elif item.type == LineItemType.STORE_PRODUCT:
            if item.store_product_id is None:
                raise _item_error(index, "select a store product", RULE_MISSING_REFERENCE)
        else:
            if not item.custom_description.strip():
                raise _item_error(index, "custom items need a description", RULE_CUSTOM_DESCRIPTION)
            if item.custom_price <= 0:
                raise _item_error(
                    index, "custom items need a price greater than zero", RULE_CUSTOM_PRICE
                )


def validate_references(
    recipient_type: RecipientType,
    recipient_id: UUID | None,
    items: Sequence[LineItemDraft],
    lookup: CatalogLookup,
) -> None:
    """Every referenced package, product and booking must exist."""
    for index, item in enumerate(items):
        if item.type == LineItemType.CUSTOM:
            continue

        if item.booking_id is not None:
            booking = lookup.booking(item.booking_id)
            if booking is None:
                raise _item_error(
                    index, f"booking {item.booking_id} not found", RULE_UNRESOLVED_REFERENCE
                )
            if recipient_type == RecipientType.COUPLE and booking.couple_id != recipient_id:
                raise _item_error(
                    index, "booking belongs to a different couple", RULE_BOOKING_RECIPIENT
                )

        if item.service_package_id is not None and lookup.package(item.service_package_id) is None:
            raise _item_error(
                index,
                f"service package {item.service_package_id} not found",
                RULE_UNRESOLVED_REFERENCE,
            )

        if item.type == LineItemType.STORE_PRODUCT and lookup.product(item.store_product_id) is None:
            raise _item_error(
                index,
                f"store product {item.store_product_id} not found",
                RULE_UNRESOLVED_REFERENCE,
            )


def booking_prices(booking: Booking, lookup: CatalogLookup) -> set[int]:
    """Prices a booking item may carry: the full amount or the initial payment."""
    package = lookup.package(booking.package_id) if booking.package_id else None
    fallback = package.price if package else 0
    return {
        booking.amount if booking.amount is not None else fallback,
        booking.initial_payment if booking.initial_payment is not None else fallback,
    }


def resolve_line_items(items: Sequence[LineItemDraft], lookup: CatalogLookup) -> list[LineItemDraft]:
    """
    Copies of the items with catalog prices and payout routing re-derived.

    Package and product prices are taken from the catalog. Booking items keep
    their price only if it is one the booking allows, and their vendor routing
    always comes from the booking's vendor. Call after validate_references.

    Raises:
        InvoiceValidationError: A booking item carries a price the booking does not allow
    """
    resolved = []
    for index, item in enumerate(items):
        update: dict = {}

        if item.booking_id is not None:
            booking = lookup.booking(item.booking_id)
            allowed = booking_prices(booking, lookup)
            if item.custom_price not in allowed:
                raise _item_error(
                    index,
                    f"price {item.custom_price} does not match booking {booking.id}",
                    RULE_BOOKING_PRICE,
                )
            vendor = lookup.vendor(booking.vendor_id) if booking.vendor_id else None
            update = {
                "service_package_id": booking.package_id,
                "store_product_id": None,
                "from_booking": True,
                "vendor_id": booking.vendor_id,
                "stripe_account_id": vendor.stripe_account_id if vendor else None,
            }
        elif item.type == LineItemType.SERVICE_PACKAGE:
            update = {
                "custom_price": lookup.package(item.service_package_id).price,
                "vendor_id": None,
                "stripe_account_id": None,
            }
        elif item.type == LineItemType.STORE_PRODUCT:
            update = {
                "custom_price": lookup.product(item.store_product_id).price,
                "vendor_id": None,
                "stripe_account_id": None,
            }
        else:
            update = {"vendor_id": None, "stripe_account_id": None}

        resolved.append(item.model_copy(update=update))
    return resolved


def validate_invoice(
    data: InvoiceCreate, lookup: CatalogLookup, max_booking_items: int
) -> list[LineItemDraft]:
    """Full save-time check of an invoice about to be created; returns the resolved items."""
    validate_composition(data.recipient_type, data.recipient_id, data.line_items, max_booking_items)
    validate_references(data.recipient_type, data.recipient_id, data.line_items, lookup)
    return resolve_line_items(data.line_items, lookup)
