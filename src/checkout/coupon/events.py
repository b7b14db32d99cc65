"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="Coupon")
class CouponRedeemed:
    """A paid checkout consumed one use of the coupon."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    used_count = Integer(required=True)
    order_ids = Text()  # JSON: list of order ids
    redeemed_at = DateTime(required=True)


@checkout.event(part_of="Coupon")
class CouponOverRedeemed:
    """A checkout was paid with a coupon whose usage cap was reached meanwhile."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    usage_limit = Integer(required=True)
    order_ids = Text()  # JSON: list of order ids
    detected_at = DateTime(required=True)
