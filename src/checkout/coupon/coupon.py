"""Coupon aggregate and its scope-aware lookup.

A coupon is either shop-scoped (``shop_id`` set) or platform-wide. Codes match
case-insensitively, however they were stored. Usage is only ever counted at
settlement; placing an order merely previews the discount.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.coupon.events import CouponOverRedeemed, CouponRedeemed
from checkout.domain import checkout


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"
    BUY_X_GET_Y = "buy_x_get_y"


class CouponStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SCHEDULED = "scheduled"
    EXPIRED = "expired"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


@checkout.aggregate
class Coupon:
    code = String(required=True, max_length=50)
    shop_id = Identifier()  # None: platform-wide
    discount_type = String(required=True, choices=DiscountType)
    value = Float(default=0.0, min_value=0.0)
    min_purchase = Float(default=0.0, min_value=0.0)
    max_discount = Float(min_value=0.0)
    buy_quantity = Integer(min_value=1)
    get_quantity = Integer(min_value=1)
    valid_from = DateTime()
    valid_until = DateTime()
    usage_limit = Integer(min_value=1)
    used_count = Integer(default=0, min_value=0)
    status = String(choices=CouponStatus, default=CouponStatus.ACTIVE.value)

    @invariant.post
    def used_count_within_usage_limit(self):
        if self.usage_limit is not None and (self.used_count or 0) > self.usage_limit:
            raise ValidationError({"used_count": ["Coupon usage cannot exceed its usage limit"]})

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and (self.value or 0) > 100:
            raise ValidationError({"value": ["Percentage discount cannot exceed 100%"]})

    @invariant.post
    def buy_x_get_y_requires_quantities(self):
        if self.discount_type == DiscountType.BUY_X_GET_Y.value and not (self.buy_quantity and self.get_quantity):
            raise ValidationError({"buy_quantity": ["Buy X get Y coupons need buy and get quantities"]})

    @property
    def is_platform_wide(self) -> bool:
        return not self.shop_id

    @property
    def at_usage_limit(self) -> bool:
        return self.usage_limit is not None and (self.used_count or 0) >= self.usage_limit

    def record_redemption(self, order_ids) -> bool:
        """Count one use for a paid checkout.

        Returns False, without counting, when the cap was already reached by a
        concurrent checkout; the caller flags its orders for reconciliation.
        """
        now = datetime.now(UTC)
        order_ids_json = json.dumps(list(order_ids))

        if self.at_usage_limit:
            self.raise_(
                CouponOverRedeemed(
                    coupon_id=str(self.id),
                    code=self.code,
                    usage_limit=self.usage_limit,
                    order_ids=order_ids_json,
                    detected_at=now,
                )
            )
            return False

        self.used_count = (self.used_count or 0) + 1
        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                used_count=self.used_count,
                order_ids=order_ids_json,
                redeemed_at=now,
            )
        )
        return True


@checkout.repository(part_of=Coupon)
class CouponRepository:
    def find_for_shop(self, shop_id, code) -> Coupon | None:
        """Locate the coupon a shop order refers to.

        A shop-scoped coupon for this shop wins over a platform-wide coupon
        with the same code; coupons scoped to other shops never match.
        """
        candidates = self._dao.query.filter(code__iexact=normalize_code(code)).all().items
        shop_scoped = next((c for c in candidates if c.shop_id and str(c.shop_id) == str(shop_id)), None)
        if shop_scoped is not None:
            return shop_scoped
        return next((c for c in candidates if c.is_platform_wide), None)

