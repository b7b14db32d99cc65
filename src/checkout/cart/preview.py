"""Read-only checkout previews over the customer's cart."""

from datetime import UTC, datetime
from decimal import Decimal

from protean.utils.globals import current_domain

from checkout.cart.cart import ShoppingCart
from checkout.catalogue.product import Product
from checkout.config import get_settings
from checkout.coupon.coupon import Coupon
from checkout.coupon.validation import evaluate_coupon, reason_message
from checkout.errors import BadRequest, CouponNotApplicable, CouponNotFound
from checkout.order.splitter import build_draft, group_cart_by_shop, load_and_validate_products
from checkout.pricing import price_shop, shop_subtotal
from checkout.store import fetch_many


def _cart_for(user_id) -> ShoppingCart:
    cart = current_domain.repository_for(ShoppingCart).for_customer(user_id)
    if cart is None or cart.is_empty:
        raise BadRequest("Cart is empty")
    return cart


def preview_checkout(user_id, coupon_codes: dict | None = None) -> dict:
    """Price the cart as it would be split into shop orders, without placing anything."""
    settings = get_settings()
    shops = group_cart_by_shop(_cart_for(user_id), coupon_codes)
    products = load_and_validate_products(shops)
    drafts = [build_draft(shop, products, settings) for shop in shops]

    return {
        "shops": [
            {
                "shop_id": draft.shop_id,
                "items": draft.items,
                "coupon_code": draft.coupon_snapshot["code"] if draft.coupon_snapshot else None,
                **draft.totals.as_floats(),
            }
            for draft in drafts
        ],
        "total": float(sum((d.totals.total for d in drafts), Decimal("0"))),
        "currency": settings.currency,
    }


def preview_coupon(user_id, code: str, shop_id=None) -> dict:
    """Evaluate a coupon against the cart lines of one shop.

    Without ``shop_id`` the first shop in the cart that the code resolves for
    is used. Unlike order placement, an inapplicable coupon is an error here so
    the customer learns why.
    """
    settings = get_settings()
    shops = group_cart_by_shop(_cart_for(user_id))
    if shop_id is not None:
        shops = [s for s in shops if s["shop_id"] == str(shop_id)]
        if not shops:
            raise BadRequest("Cart has no items from this shop")

    coupon_repo = current_domain.repository_for(Coupon)
    match = next(
        ((shop, coupon) for shop in shops if (coupon := coupon_repo.find_for_shop(shop["shop_id"], code)) is not None),
        None,
    )
    if match is None:
        raise CouponNotFound("Invalid coupon code", code=code)
    shop, coupon = match

    products = fetch_many(Product, [item["product_id"] for item in shop["items"]])
    lines = [
        (products[item["product_id"]].price, item["quantity"])
        for item in shop["items"]
        if item["product_id"] in products
    ]
    evaluation = evaluate_coupon(coupon, shop_subtotal(lines), datetime.now(UTC), lines)
    if not evaluation.applicable:
        raise CouponNotApplicable(reason_message(evaluation.reason, coupon), reason=evaluation.reason)

    totals = price_shop(
        lines,
        tax_rate=settings.tax_rate,
        free_shipping_threshold=settings.free_shipping_threshold,
        flat_shipping_fee=settings.flat_shipping_fee,
        discount=evaluation.discount_amount,
        free_shipping=evaluation.free_shipping,
    )
    return {
        "code": coupon.code,
        "shop_id": shop["shop_id"],
        "free_shipping": evaluation.free_shipping,
        **totals.as_floats(),
    }
