"""Order splitter: turns a multi-shop request into priced per-shop drafts.

Nothing here writes. The splitter reads products and coupons, validates the
whole request up front and prices each shop; persisting the drafts is the
caller's job, so a rejected request never leaves a partial set of orders.
"""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import UTC, datetime

from protean.utils.globals import current_domain

from checkout.catalogue.product import Product
from checkout.catalogue.stock import check_available
from checkout.config import CheckoutSettings
from checkout.coupon.coupon import Coupon
from checkout.coupon.validation import evaluate_coupon, reason_message
from checkout.errors import BadRequest, OrderRejected, ProductNotFound
from checkout.pricing import ShopTotals, line_subtotal, price_shop
from checkout.store import fetch_many
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ShopDraft:
    shop_id: str
    shop_name: str | None
    items: list[dict]
    totals: ShopTotals
    coupon_snapshot: dict | None = None

    def pricing(self, currency: str) -> dict:
        return {**self.totals.as_floats(), "currency": currency}


def merge_shop_orders(shop_orders: list[dict]) -> list[dict]:
    """Collapse entries for the same shop into one, keeping request order.

    Lines for the same product and variant are summed; the first non-empty
    shop name and coupon code win.
    """
    if not shop_orders:
        raise BadRequest("At least one shop order is required")

    merged: OrderedDict[str, dict] = OrderedDict()
    for entry in shop_orders:
        shop_id = str(entry.get("shop_id") or "").strip()
        if not shop_id:
            raise BadRequest("Each shop order needs a shop_id")
        items = entry.get("items") or []
        if not items:
            raise BadRequest(f"Shop order for {shop_id} has no items")

        target = merged.setdefault(
            shop_id, {"shop_id": shop_id, "shop_name": None, "coupon_code": None, "items": OrderedDict()}
        )
        target["shop_name"] = target["shop_name"] or entry.get("shop_name")
        target["coupon_code"] = target["coupon_code"] or (entry.get("coupon_code") or "").strip() or None

        for item in items:
            product_id = str(item.get("product_id") or "").strip()
            quantity = item.get("quantity")
            if not product_id:
                raise BadRequest("Each item needs a product_id")
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise BadRequest(f"Quantity for product {product_id} must be a positive integer")

            key = (product_id, item.get("variant") or None)
            line = target["items"].setdefault(
                key, {"product_id": product_id, "variant": item.get("variant") or None, "quantity": 0}
            )
            line["quantity"] += quantity

    return [{**shop, "items": list(shop["items"].values())} for shop in merged.values()]


def requested_quantities(shop_orders: list[dict]) -> dict[str, int]:
    """Total units requested per product across every shop order."""
    totals: dict[str, int] = {}
    for shop in shop_orders:
        for item in shop["items"]:
            totals[item["product_id"]] = totals.get(item["product_id"], 0) + item["quantity"]
    return totals


def load_and_validate_products(shop_orders: list[dict]) -> dict:
    """Fetch every referenced product and check the whole request against stock.

    Raises on the first problem; stock is checked against the combined
    quantity of a product across all shop orders.
    """
    quantities = requested_quantities(shop_orders)
    products = fetch_many(Product, quantities.keys())

    for shop in shop_orders:
        for item in shop["items"]:
            product = products.get(item["product_id"])
            if product is None:
                raise ProductNotFound(f"Product {item['product_id']} not found")
            if str(product.shop_id) != shop["shop_id"]:
                raise OrderRejected(f"{product.name} is not sold by shop {shop['shop_id']}")

    for product_id, quantity in quantities.items():
        check_available(products[product_id], quantity)

    return products


def _item_snapshot(product, item) -> dict:
    return {
        "product_id": str(product.id),
        "product_name": product.name,
        "product_image": product.image,
        "variant": item["variant"],
        "unit_price": product.price,
        "quantity": item["quantity"],
        "subtotal": float(line_subtotal(product.price, item["quantity"])),
    }


def _resolve_coupon(shop, lines, subtotal, now):
    """Find and evaluate the shop's coupon. Returns (None, None) for a missing or unknown code."""
    code = shop.get("coupon_code")
    if not code:
        return None, None

    coupon = current_domain.repository_for(Coupon).find_for_shop(shop["shop_id"], code)
    if coupon is None:
        logger.info("coupon_ignored", shop_id=shop["shop_id"], code=code, reason="unknown_code")
        return None, None

    evaluation = evaluate_coupon(coupon, subtotal, now, lines)
    if not evaluation.applicable:
        logger.info(
            "coupon_ignored",
            shop_id=shop["shop_id"],
            code=coupon.code,
            reason=evaluation.reason,
            message=reason_message(evaluation.reason, coupon),
        )
    return coupon, evaluation


def build_draft(shop: dict, products: dict, settings: CheckoutSettings, now: datetime | None = None) -> ShopDraft:
    """Snapshot items and price one shop order, applying its coupon when it qualifies."""
    now = now or datetime.now(UTC)

    items = [_item_snapshot(products[item["product_id"]], item) for item in shop["items"]]
    lines = [(item["unit_price"], item["quantity"]) for item in items]
    subtotal = sum(line_subtotal(price, qty) for price, qty in lines)

    coupon, evaluation = _resolve_coupon(shop, lines, subtotal, now)
    applied = evaluation is not None and evaluation.applicable

    totals = price_shop(
        lines,
        tax_rate=settings.tax_rate,
        free_shipping_threshold=settings.free_shipping_threshold,
        flat_shipping_fee=settings.flat_shipping_fee,
        discount=evaluation.discount_amount if applied else 0,
        free_shipping=evaluation.free_shipping if applied else False,
    )

    snapshot = None
    if applied:
        snapshot = {
            "coupon_id": str(coupon.id),
            "code": coupon.code,
            "discount_type": coupon.discount_type,
            "value": coupon.value,
            "discount_amount": float(evaluation.discount_amount),
            "free_shipping": evaluation.free_shipping,
        }

    return ShopDraft(
        shop_id=shop["shop_id"],
        shop_name=shop.get("shop_name"),
        items=items,
        totals=totals,
        coupon_snapshot=snapshot,
    )


def split_into_drafts(shop_orders: list[dict], settings: CheckoutSettings, now: datetime | None = None) -> list[ShopDraft]:
    """Merge, validate and price a multi-shop request. Raises before returning anything partial."""
    merged = merge_shop_orders(shop_orders)
    products = load_and_validate_products(merged)
    return [build_draft(shop, products, settings, now) for shop in merged]


def group_cart_by_shop(cart, coupon_codes: dict | None = None) -> list[dict]:
    """Shape a cart's lines as shop orders, one per shop, in the order lines were added."""
    coupon_codes = coupon_codes or {}
    grouped: OrderedDict[str, dict] = OrderedDict()
    for line in sorted(cart.items, key=lambda i: i.added_at or datetime.min.replace(tzinfo=UTC)):
        shop_id = str(line.shop_id)
        shop = grouped.setdefault(
            shop_id,
            {"shop_id": shop_id, "shop_name": None, "coupon_code": coupon_codes.get(shop_id), "items": []},
        )
        shop["items"].append({"product_id": str(line.product_id), "variant": line.variant, "quantity": line.quantity})
    return list(grouped.values())
