"""
Invoice arithmetic.

Every derived amount (subtotal, discount, total, deposit, remaining balance)
comes from here, so the composer, invoice creation and line item edits agree
to the cent. All inputs and outputs are integer cents; percentage math floors
with integer division and the remaining balance is always total - deposit.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Protocol

from core.models import (
    DiscountMode,
    FlatDiscount,
    InvoiceTotals,
    PercentageDiscount,
)


class PricedItem(Protocol):
    custom_price: int
    quantity: int


def calculate_subtotal(items: Iterable[PricedItem]) -> int:
    return sum(item.custom_price * item.quantity for item in items)


def calculate_discount(subtotal: int, discount: FlatDiscount | PercentageDiscount) -> int:
    """Discount in cents, clamped so it never exceeds the subtotal."""
    if isinstance(discount, PercentageDiscount):
        amount = subtotal * discount.percentage // 100
    else:
        amount = discount.amount_cents
    return max(0, min(amount, subtotal))


def calculate_total(items: Iterable[PricedItem], discount: FlatDiscount | PercentageDiscount) -> int:
    subtotal = calculate_subtotal(items)
    return subtotal - calculate_discount(subtotal, discount)


def calculate_deposit(total: int, deposit_percentage: int | None) -> int:
    if not deposit_percentage:
        return 0
    return total * deposit_percentage // 100


def calculate_remaining(total: int, deposit_percentage: int | None) -> int:
    return total - calculate_deposit(total, deposit_percentage)


def compute_totals(
    items: Iterable[PricedItem],
    discount: FlatDiscount | PercentageDiscount,
    deposit_percentage: int | None,
) -> InvoiceTotals:
    """
    All derived amounts for one invoice.

    Example:
        items 10000 x1 and 5000 x2, flat 2500 off, 20% deposit
        -> subtotal 20000, discount 2500, total 17500, deposit 3500, remaining 14000
    """
    subtotal = calculate_subtotal(items)
    discount_cents = calculate_discount(subtotal, discount)
    total = subtotal - discount_cents
    deposit = calculate_deposit(total, deposit_percentage)
    return InvoiceTotals(
        subtotal=subtotal,
        discount=discount_cents,
        total=total,
        deposit=deposit,
        remaining=total - deposit,
    )


def switch_discount_mode(
    discount: FlatDiscount | PercentageDiscount,
    mode: DiscountMode | str,
) -> FlatDiscount | PercentageDiscount:
    """
    Switch the active discount mode.

    Switching to the other mode starts it at zero, so the previous value
    never lingers. Switching to the current mode keeps the value.
    """
    mode = DiscountMode(mode)
    if mode.value == discount.mode:
        return discount
    if mode == DiscountMode.PERCENTAGE:
        return PercentageDiscount(percentage=0)
    return FlatDiscount(amount_cents=0)


# =============================================================================
# PRESENTATION
# =============================================================================

_CENT = Decimal("0.01")


def format_cents(cents: int) -> str:
    """1750 -> '17.50'. Display only; never parse the result back."""
    return str((Decimal(cents) / 100).quantize(_CENT))


def parse_amount(text: str | int | float) -> int:
    """
    Parse an operator-typed amount in major units to cents.

    '175' -> 17500, '$1,234.5' -> 123450, '0.125' -> 13 (half up).

    Raises:
        ValueError: Not a number, or negative
    """
    cleaned = str(text).strip().replace("$", "").replace(",", "")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {text!r}")

    if not value.is_finite():
        raise ValueError(f"Invalid amount: {text!r}")
    if value < 0:
        raise ValueError(f"Amount cannot be negative: {text!r}")

    return int(value.quantize(_CENT, rounding=ROUND_HALF_UP) * 100)
