"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """One shop's share of a checkout was persisted as an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    human_order_id = String(required=True)
    user_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    payment_method = String(required=True)
    payment_status = String(required=True)
    total = Float(required=True)
    currency = String(default="INR")
    coupon_code = String()
    gateway_order_id = String()
    placed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaid:
    """A verified gateway payment settled the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    gateway_payment_id = String(required=True)
    total = Float(required=True)
    paid_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String()
    reason = String(required=True)
    failed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderFlaggedForReconciliation:
    """Settlement could not honour the order exactly as sold (oversold stock, over-redeemed coupon)."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    details = Text()  # JSON
    flagged_at = DateTime(required=True)
