"""
Invoice composer.

Holds one invoice-editing session in memory: the recipient, the ordered line
items, the discount and the deposit percentage. Selecting a package, product
or booking copies its price (and, for bookings, the vendor payout routing)
onto the line item, resolved through a CatalogLookup.

The composer never touches the database. DraftService keeps its state in
Valkey between requests and InvoiceService persists the final request.
"""

import logging
from typing import Any
from uuid import UUID

from pydantic import TypeAdapter

from core import validation
from core.billing import compute_totals, switch_discount_mode
from core.exceptions import InvoiceValidationError
from core.models import (
    CatalogLookup,
    Discount,
    DiscountMode,
    FlatDiscount,
    InvoiceCreate,
    InvoiceTotals,
    LineItemDraft,
    LineItemType,
    PercentageDiscount,
    RecipientType,
)

logger = logging.getLogger(__name__)

_discount_adapter = TypeAdapter(Discount)

RULE_UNKNOWN_ITEM = "unknown_line_item"
RULE_UNKNOWN_FIELD = "unknown_field"
RULE_INVALID_VALUE = "invalid_value"


def _invalid(message: str, rule: str = RULE_INVALID_VALUE, item_index: int | None = None):
    return InvoiceValidationError(message, rule=rule, item_index=item_index)


def _as_uuid(value: Any, field: str, index: int) -> UUID | None:
    if value is None or value == "":
        return None
    try:
        return value if isinstance(value, UUID) else UUID(str(value))
    except ValueError:
        raise _invalid(f"Line item {index + 1}: {field} is not a valid id", item_index=index)


def _as_int(value: Any, field: str, index: int, minimum: int) -> int:
    if isinstance(value, bool):
        raise _invalid(f"Line item {index + 1}: {field} must be a whole number", item_index=index)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise _invalid(f"Line item {index + 1}: {field} must be a whole number", item_index=index)
    if number < minimum:
        raise _invalid(
            f"Line item {index + 1}: {field} must be at least {minimum}", item_index=index
        )
    return number


class InvoiceComposer:
    """
    In-memory line item builder and totals calculator.

    Usage:
        composer = InvoiceComposer(lookup)
        composer.set_recipient(RecipientType.COUPLE, couple_id)
        i = composer.add_line_item(LineItemType.SERVICE_PACKAGE, from_booking=True)
        composer.update_line_item(i, "booking_id", booking_id)
        composer.set_deposit_percentage(25)
        request = composer.build_request()
    """

    def __init__(self, lookup: CatalogLookup | None = None, max_booking_items: int = 3):
        self.lookup = lookup or CatalogLookup()
        self.max_booking_items = max_booking_items
        self.recipient_type = RecipientType.COUPLE
        self.recipient_id: UUID | None = None
        self.items: list[LineItemDraft] = []
        self.discount: FlatDiscount | PercentageDiscount = FlatDiscount()
        self.deposit_percentage = 0

    # -------------------------------------------------------------------------
    # Recipient
    # -------------------------------------------------------------------------

    def set_recipient(self, recipient_type: RecipientType | str, recipient_id: UUID | None) -> None:
        """Choose who is billed. Switching between couple and vendor drops all line items."""
        recipient_type = RecipientType(recipient_type)
        if recipient_type != self.recipient_type and self.items:
            logger.info(f"Recipient type changed to {recipient_type.value}; clearing line items")
            self.items = []
        self.recipient_type = recipient_type
        self.recipient_id = recipient_id

    # -------------------------------------------------------------------------
    # Line items
    # -------------------------------------------------------------------------

    def _item(self, index: int) -> LineItemDraft:
        if not 0 <= index < len(self.items):
            raise _invalid(f"No line item at position {index + 1}", RULE_UNKNOWN_ITEM, index)
        return self.items[index]

    def add_line_item(self, item_type: LineItemType | str, from_booking: bool = False) -> int:
        """
        Append a defaulted line item and return its index.

        Booking selections are only offered on couple invoices and count
        against the booking item limit as soon as they are added.
        """
        try:
            item_type = LineItemType(item_type)
        except ValueError:
            raise _invalid(f"Unknown line item type '{item_type}'")

        if from_booking:
            if item_type != LineItemType.SERVICE_PACKAGE:
                raise _invalid("Only service package items can be selected from a booking")
            if self.recipient_type != RecipientType.COUPLE:
                raise InvoiceValidationError(
                    "Bookings can only be invoiced to couples",
                    rule=validation.RULE_BOOKING_ON_VENDOR,
                )
            validation.ensure_booking_capacity(self.items, self.max_booking_items)

        self.items.append(LineItemDraft(type=item_type, from_booking=from_booking))
        return len(self.items) - 1

    def update_line_item(self, index: int, field: str, value: Any) -> LineItemDraft:
        """Set one field of a line item, applying the side effects of catalog selections."""
        item = self._item(index)
        setter = getattr(self, f"_set_{field}", None)
        if setter is None:
            raise _invalid(f"Unknown line item field '{field}'", RULE_UNKNOWN_FIELD, index)
        setter(index, item, value)
        return item

    def remove_line_item(self, index: int) -> None:
        self._item(index)
        del self.items[index]

    def _set_service_package_id(self, index: int, item: LineItemDraft, value: Any) -> None:
        if item.type != LineItemType.SERVICE_PACKAGE:
            raise _invalid(f"Line item {index + 1}: not a service package item", item_index=index)

        package_id = _as_uuid(value, "service_package_id", index)
        price = 0
        if package_id is not None:
            package = self.lookup.package(package_id)
            if package is None:
                raise _invalid(
                    f"Line item {index + 1}: service package {package_id} not found",
                    validation.RULE_UNRESOLVED_REFERENCE,
                    index,
                )
            price = package.price

        item.service_package_id = package_id
        item.custom_price = price
        item.booking_id = None
        item.from_booking = False
        item.vendor_id = None
        item.stripe_account_id = None

    def _set_store_product_id(self, index: int, item: LineItemDraft, value: Any) -> None:
        if item.type != LineItemType.STORE_PRODUCT:
            raise _invalid(f"Line item {index + 1}: not a store product item", item_index=index)

        product_id = _as_uuid(value, "store_product_id", index)
        price = 0
        if product_id is not None:
            product = self.lookup.product(product_id)
            if product is None:
                raise _invalid(
                    f"Line item {index + 1}: store product {product_id} not found",
                    validation.RULE_UNRESOLVED_REFERENCE,
                    index,
                )
            price = product.price

        item.store_product_id = product_id
        item.custom_price = price
        item.vendor_id = None
        item.stripe_account_id = None

    def _set_booking_id(self, index: int, item: LineItemDraft, value: Any) -> None:
        if self.recipient_type != RecipientType.COUPLE:
            raise InvoiceValidationError(
                f"Line item {index + 1}: bookings can only be invoiced to couples",
                rule=validation.RULE_BOOKING_ON_VENDOR,
                item_index=index,
            )

        booking_id = _as_uuid(value, "booking_id", index)
        if booking_id is None:
            item.booking_id = None
            item.service_package_id = None
            item.custom_price = 0
            item.vendor_id = None
            item.stripe_account_id = None
            return

        booking = self.lookup.booking(booking_id)
        if booking is None:
            raise _invalid(
                f"Line item {index + 1}: booking {booking_id} not found",
                validation.RULE_UNRESOLVED_REFERENCE,
                index,
            )
        if booking.couple_id != self.recipient_id:
            raise _invalid(
                f"Line item {index + 1}: booking belongs to a different couple",
                validation.RULE_BOOKING_RECIPIENT,
                index,
            )
        validation.ensure_booking_capacity(self.items, self.max_booking_items, exclude_index=index)

        # With a deposit already chosen, bill the booking's own initial payment.
        price = booking.initial_payment if self.deposit_percentage > 0 else booking.amount
        if price is None:
            package = self.lookup.package(booking.package_id) if booking.package_id else None
            price = package.price if package else 0

        vendor = self.lookup.vendor(booking.vendor_id) if booking.vendor_id else None

        item.type = LineItemType.SERVICE_PACKAGE
        item.booking_id = booking.id
        item.from_booking = True
        item.service_package_id = booking.package_id
        item.store_product_id = None
        item.custom_price = price
        item.vendor_id = booking.vendor_id
        item.stripe_account_id = vendor.stripe_account_id if vendor else None

    def _set_type(self, index: int, item: LineItemDraft, value: Any) -> None:
        try:
            item_type = LineItemType(value)
        except ValueError:
            raise _invalid(f"Line item {index + 1}: unknown type '{value}'", item_index=index)
        if item_type == item.type:
            return

        item.type = item_type
        item.service_package_id = None
        item.store_product_id = None
        item.booking_id = None
        item.from_booking = False
        item.custom_description = ""
        item.custom_price = 0
        item.vendor_id = None
        item.stripe_account_id = None

    def _set_quantity(self, index: int, item: LineItemDraft, value: Any) -> None:
        item.quantity = _as_int(value, "quantity", index, minimum=1)

    def _set_custom_price(self, index: int, item: LineItemDraft, value: Any) -> None:
        if item.type != LineItemType.CUSTOM:
            raise _invalid(
                f"Line item {index + 1}: price comes from the catalog or booking", item_index=index
            )
        item.custom_price = _as_int(value, "custom_price", index, minimum=0)

    def _set_custom_description(self, index: int, item: LineItemDraft, value: Any) -> None:
        item.custom_description = "" if value is None else str(value)

    # -------------------------------------------------------------------------
    # Discount & deposit
    # -------------------------------------------------------------------------

    def set_discount_mode(self, mode: DiscountMode | str) -> None:
        try:
            self.discount = switch_discount_mode(self.discount, mode)
        except ValueError:
            raise _invalid(f"Unknown discount mode '{mode}'")

    def set_discount_value(self, value: Any) -> None:
        """Set the value of the active discount mode (cents for flat, points for percentage)."""
        if isinstance(value, bool):
            raise _invalid("Discount must be a whole number")
        try:
            amount = int(value)
        except (TypeError, ValueError):
            raise _invalid("Discount must be a whole number")
        if amount < 0:
            raise _invalid("Discount cannot be negative")

        if isinstance(self.discount, PercentageDiscount):
            self.discount = PercentageDiscount(percentage=amount)
        else:
            self.discount = FlatDiscount(amount_cents=amount)

    def set_deposit_percentage(self, percentage: Any) -> None:
        """Deposit is 0-100. Prices already copied from bookings are left as they are."""
        if isinstance(percentage, bool):
            raise _invalid("Deposit percentage must be a whole number")
        try:
            value = int(percentage or 0)
        except (TypeError, ValueError):
            raise _invalid("Deposit percentage must be a whole number")
        if not 0 <= value <= 100:
            raise _invalid("Deposit percentage must be between 0 and 100")
        self.deposit_percentage = value

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def totals(self) -> InvoiceTotals:
        return compute_totals(self.items, self.discount, self.deposit_percentage)

    def validate(self) -> None:
        validation.validate_composition(
            self.recipient_type, self.recipient_id, self.items, self.max_booking_items
        )
        validation.validate_references(
            self.recipient_type, self.recipient_id, self.items, self.lookup
        )

    def build_request(self) -> InvoiceCreate:
        """Validated create request for InvoiceService.create."""
        self.validate()
        recipient_field = (
            "couple_id" if self.recipient_type == RecipientType.COUPLE else "vendor_id"
        )
        return InvoiceCreate(
            recipient_type=self.recipient_type,
            line_items=[item.model_copy() for item in self.items],
            discount=self.discount,
            deposit_percentage=self.deposit_percentage,
            **{recipient_field: self.recipient_id},
        )

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_state(self) -> dict:
        """JSON-safe snapshot of the session."""
        return {
            "recipient_type": self.recipient_type.value,
            "recipient_id": str(self.recipient_id) if self.recipient_id else None,
            "line_items": [item.model_dump(mode="json") for item in self.items],
            "discount": self.discount.model_dump(mode="json"),
            "deposit_percentage": self.deposit_percentage,
        }

    @classmethod
    def from_state(
        cls,
        state: dict,
        lookup: CatalogLookup | None = None,
        max_booking_items: int = 3,
    ) -> "InvoiceComposer":
        composer = cls(lookup, max_booking_items)
        composer.recipient_type = RecipientType(state.get("recipient_type", RecipientType.COUPLE))
        recipient_id = state.get("recipient_id")
        composer.recipient_id = UUID(recipient_id) if recipient_id else None
        composer.items = [LineItemDraft.model_validate(i) for i in state.get("line_items", [])]
        composer.discount = _discount_adapter.validate_python(
            state.get("discount") or {"mode": "flat"}
        )
        composer.deposit_percentage = state.get("deposit_percentage", 0)
        return composer
