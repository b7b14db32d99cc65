"""Pricing calculator: pure functions, no I/O.

Amounts are handled as Decimal so that rounding is exact and reproducible;
callers convert to float only when writing to an aggregate field.

Rounding policy: tax is rounded half-up to a whole currency unit, and
conversion to minor units (paise/cents) is rounded half-up as well.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

_WHOLE_UNIT = Decimal("1")
_MINOR_UNITS_PER_UNIT = Decimal("100")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
    return Decimal(str(value))


def round_half_up(value) -> Decimal:
    return to_decimal(value).quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP)


def line_subtotal(unit_price, quantity: int) -> Decimal:
    return to_decimal(unit_price) * quantity


def shop_subtotal(lines: Iterable[tuple]) -> Decimal:
    """Sum of unit_price x quantity over (unit_price, quantity) pairs."""
    return sum((line_subtotal(price, qty) for price, qty in lines), Decimal("0"))


def shipping_fee(subtotal, free_shipping_threshold, flat_fee, free_shipping: bool = False) -> Decimal:
    if free_shipping:
        return Decimal("0")
    if to_decimal(subtotal) >= to_decimal(free_shipping_threshold):
        return Decimal("0")
    return to_decimal(flat_fee)


def tax_amount(subtotal, tax_rate) -> Decimal:
    return round_half_up(to_decimal(subtotal) * to_decimal(tax_rate))


def order_total(subtotal, shipping, tax, discount) -> Decimal:
    """subtotal + shipping + tax - discount, deliberately not floored.

    Discounts are bounded by the subtotal when they are computed, so a
    negative total here means bad coupon data rather than a pricing rule.
    """
    return to_decimal(subtotal) + to_decimal(shipping) + to_decimal(tax) - to_decimal(discount)


def to_minor_units(amount) -> int:
    return int((to_decimal(amount) * _MINOR_UNITS_PER_UNIT).quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ShopTotals:
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal

    def as_floats(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "discount": float(self.discount),
            "shipping": float(self.shipping),
            "tax": float(self.tax),
            "total": float(self.total),
        }


def price_shop(
    lines: Iterable[tuple],
    *,
    tax_rate,
    free_shipping_threshold,
    flat_shipping_fee,
    discount=0,
    free_shipping: bool = False,
) -> ShopTotals:
    """Price one shop order from its (unit_price, quantity) lines."""
    subtotal = shop_subtotal(lines)
    shipping = shipping_fee(subtotal, free_shipping_threshold, flat_shipping_fee, free_shipping=free_shipping)
    tax = tax_amount(subtotal, tax_rate)
    discount = to_decimal(discount)
    return ShopTotals(
        subtotal=subtotal,
        discount=discount,
        shipping=shipping,
        tax=tax,
        total=order_total(subtotal, shipping, tax, discount),
    )
