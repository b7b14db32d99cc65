"""Coupon validator: pure evaluation of a coupon against one shop order.

Lookup (which coupon record applies to a shop) lives in CouponRepository;
this module only answers "does it apply, and for how much". An inapplicable
coupon is a normal result carrying a reason, never an exception.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_FLOOR, Decimal

from checkout.coupon.coupon import CouponStatus, DiscountType
from checkout.pricing import to_decimal

INACTIVE = "inactive"
NOT_YET_VALID = "not_yet_valid"
EXPIRED = "expired"
MINIMUM_NOT_MET = "minimum_not_met"
USAGE_LIMIT_REACHED = "usage_limit_reached"

_REASON_MESSAGES = {
    INACTIVE: "Coupon is not active",
    NOT_YET_VALID: "Coupon not yet valid",
    EXPIRED: "Coupon has expired",
    MINIMUM_NOT_MET: "Minimum purchase amount is {min_purchase}",
    USAGE_LIMIT_REACHED: "Coupon usage limit reached",
}


@dataclass(frozen=True)
class CouponEvaluation:
    applicable: bool
    discount_amount: Decimal = Decimal("0")
    free_shipping: bool = False
    reason: str | None = None

    @classmethod
    def rejected(cls, reason: str) -> "CouponEvaluation":
        return cls(applicable=False, reason=reason)


def reason_message(reason: str, coupon) -> str:
    """Human-readable explanation for a rejection reason."""
    template = _REASON_MESSAGES.get(reason, "Coupon cannot be applied")
    return template.format(min_purchase=f"{to_decimal(coupon.min_purchase).normalize():f}")


def _as_utc(moment: datetime | None) -> datetime | None:
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def buy_x_get_y_discount(lines: Iterable[tuple], buy_quantity: int, get_quantity: int) -> Decimal:
    """Value of the free units in a "buy X, get Y free" offer.

    For every complete group of ``buy_quantity + get_quantity`` units in the
    shop order, the ``get_quantity`` cheapest units are free.
    """
    lines = [(to_decimal(price), qty) for price, qty in lines]
    group_size = buy_quantity + get_quantity
    total_units = sum(qty for _, qty in lines)
    free_units = (total_units // group_size) * get_quantity

    discount = Decimal("0")
    for price, qty in sorted(lines, key=lambda line: line[0]):
        if free_units <= 0:
            break
        taken = min(qty, free_units)
        discount += price * taken
        free_units -= taken
    return discount


def evaluate_coupon(coupon, shop_subtotal, now: datetime, lines: Iterable[tuple] = ()) -> CouponEvaluation:
    """Decide whether ``coupon`` applies to a shop order worth ``shop_subtotal``.

    ``lines`` are the shop order's (unit_price, quantity) pairs; only the
    buy-x-get-y policy looks at them.
    """
    subtotal = to_decimal(shop_subtotal)
    now = _as_utc(now)

    if coupon.status != CouponStatus.ACTIVE.value:
        return CouponEvaluation.rejected(INACTIVE)

    valid_from = _as_utc(coupon.valid_from)
    if valid_from is not None and now < valid_from:
        return CouponEvaluation.rejected(NOT_YET_VALID)

    valid_until = _as_utc(coupon.valid_until)
    if valid_until is not None and now > valid_until:
        return CouponEvaluation.rejected(EXPIRED)

    if subtotal < to_decimal(coupon.min_purchase):
        return CouponEvaluation.rejected(MINIMUM_NOT_MET)

    if coupon.usage_limit is not None and (coupon.used_count or 0) >= coupon.usage_limit:
        return CouponEvaluation.rejected(USAGE_LIMIT_REACHED)

    discount_type = DiscountType(coupon.discount_type)
    if discount_type is DiscountType.FREE_SHIPPING:
        return CouponEvaluation(applicable=True, free_shipping=True)

    if discount_type is DiscountType.PERCENTAGE:
        discount = (subtotal * to_decimal(coupon.value) / 100).to_integral_value(rounding=ROUND_FLOOR)
    elif discount_type is DiscountType.FIXED:
        discount = to_decimal(coupon.value)
    else:
        discount = buy_x_get_y_discount(lines, coupon.buy_quantity, coupon.get_quantity)

    if coupon.max_discount and discount_type is not DiscountType.FIXED:
        discount = min(discount, to_decimal(coupon.max_discount))

    return CouponEvaluation(applicable=True, discount_amount=min(discount, subtotal))
