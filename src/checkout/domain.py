"""Checkout bounded context: order placement and payment settlement.

Splits a multi-shop cart into one order per seller, prices each shop order
(coupons, shipping, tax), and later settles a verified gateway payment by
committing stock, coupon usage and cart changes in a single unit of work.

Products, coupons, addresses and carts live in this context as well because
settlement must change all of them atomically.
"""

from protean.domain import Domain

from checkout.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

checkout = Domain(name="checkout")
