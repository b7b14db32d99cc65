"""Payment verification and settlement.

A verified payment changes four kinds of records at once: the orders become
paid, stock is deducted, coupon usage is counted and the customer's cart is
emptied. ``commit_settlement`` applies those changes and always runs inside a
single unit of work (the command handler's, or one opened by
``with_transaction``), so a failure leaves none of them behind.

Cash-on-delivery orders go through the same ``commit_settlement`` at
placement time.
"""

import json
from collections import OrderedDict

from protean import handle
from protean.exceptions import ExpectedVersionError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.cart.cart import ShoppingCart
from checkout.catalogue.product import Product
from checkout.config import get_settings
from checkout.coupon.coupon import Coupon
from checkout.domain import checkout
from checkout.errors import (
    AuthorizationError,
    BadRequest,
    ConcurrentUpdate,
    Forbidden,
    NotFoundError,
    OrderNotFound,
    PaymentVerificationFailed,
    SettlementFailed,
)
from checkout.order.order import Order, PaymentStatus
from checkout.payment.signature import verify_signature
from checkout.store import fetch, with_transaction
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_FAILED = "Signature verification failed"
SETTLEMENT_NOT_COMMITTED = "Settlement could not be committed"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@checkout.command(part_of="Order")
class VerifyPayment:
    user_id = Identifier(required=True)
    order_ids = Text(required=True)  # JSON: list of order ids
    gateway_order_id = String(required=True, max_length=100)
    gateway_payment_id = String(required=True, max_length=100)
    signature = String(required=True, max_length=200)


@checkout.command(part_of="Order")
class MarkPaymentFailed:
    user_id = Identifier(required=True)
    order_ids = Text(required=True)  # JSON: list of order ids
    reason = String(required=True, max_length=500)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _decode_ids(order_ids) -> list[str]:
    ids = json.loads(order_ids) if isinstance(order_ids, str) else order_ids
    return list(dict.fromkeys(str(i) for i in ids or []))


def load_orders_for_verification(user_id, order_ids, gateway_order_id) -> list[Order]:
    """Fetch the orders a payment callback refers to and check they can take it.

    Read-only; every check runs before anything is changed.
    """
    if not order_ids:
        raise BadRequest("order_ids is required")

    orders = []
    for order_id in order_ids:
        order = fetch(Order, order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found", order_id=order_id)
        if not order.belongs_to(user_id):
            raise Forbidden("You do not have access to this order", order_id=order_id)
        if order.is_cod:
            raise BadRequest(f"Order {order.human_order_id} is cash on delivery and takes no online payment")
        if order.gateway_order_id != gateway_order_id:
            raise BadRequest(f"Order {order.human_order_id} does not belong to gateway order {gateway_order_id}")
        if order.is_failed:
            raise BadRequest(f"Payment for order {order.human_order_id} has already failed")
        orders.append(order)
    return orders


def commit_settlement(orders: list[Order], user_id) -> None:
    """Apply stock, coupon and cart side effects of ``orders`` and persist everything.

    Stock is deducted once per product for the combined quantity across the
    orders and never goes below zero; any shortfall is attributed to the
    orders last in line, which get flagged for reconciliation. Each distinct
    coupon is counted once per call however many orders share it.
    """
    order_ids = [str(o.id) for o in orders]

    def _settle():
        # Stock
        demand: OrderedDict[str, int] = OrderedDict()
        holders: dict[str, list[Order]] = {}
        for order in orders:
            for item in order.items:
                product_id = str(item.product_id)
                demand[product_id] = demand.get(product_id, 0) + item.quantity
                holders.setdefault(product_id, [])
                if order not in holders[product_id]:
                    holders[product_id].append(order)

        product_repo = current_domain.repository_for(Product)
        for product_id, quantity in demand.items():
            product = fetch(Product, product_id)
            if product is None:
                logger.warning("settled_product_missing", product_id=product_id, order_ids=order_ids)
                for order in holders[product_id]:
                    order.flag_for_reconciliation("product_missing", product_id=product_id)
                continue

            shortfall = product.deduct_stock(quantity, order_ids)
            product_repo.add(product)
            if shortfall:
                logger.warning(
                    "stock_oversold",
                    product_id=product_id,
                    requested=quantity,
                    shortfall=shortfall,
                    order_ids=order_ids,
                )
                remaining = shortfall
                for order in reversed(holders[product_id]):
                    remaining -= order.record_shortfall(product_id, remaining)
                    if remaining <= 0:
                        break

        # Coupons
        coupon_repo = current_domain.repository_for(Coupon)
        redeemers: OrderedDict[str, list[Order]] = OrderedDict()
        for order in orders:
            if order.coupon is not None:
                redeemers.setdefault(str(order.coupon.coupon_id), []).append(order)

        for coupon_id, coupon_orders in redeemers.items():
            coupon = fetch(Coupon, coupon_id)
            redeemer_ids = [str(o.id) for o in coupon_orders]
            if coupon is None:
                logger.warning("settled_coupon_missing", coupon_id=coupon_id, order_ids=redeemer_ids)
                for order in coupon_orders:
                    order.flag_for_reconciliation("coupon_missing", coupon_id=coupon_id)
                continue

            if not coupon.record_redemption(redeemer_ids):
                logger.warning(
                    "coupon_over_redeemed",
                    coupon_id=coupon_id,
                    code=coupon.code,
                    usage_limit=coupon.usage_limit,
                    order_ids=redeemer_ids,
                )
                for order in coupon_orders:
                    order.flag_for_reconciliation("coupon_over_redeemed", coupon_code=coupon.code)
            coupon_repo.add(coupon)

        # Cart
        cart_repo = current_domain.repository_for(ShoppingCart)
        cart = cart_repo.for_customer(user_id)
        if cart is not None and not cart.is_empty:
            cart.clear(reason="checkout", order_ids=order_ids)
            cart_repo.add(cart)

        order_repo = current_domain.repository_for(Order)
        for order in orders:
            order_repo.add(order)

    with_transaction(_settle)


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------
@checkout.command_handler(part_of=Order)
class PaymentSettlementHandler:
    @handle(VerifyPayment)
    def verify_payment(self, command):
        """Settle a gateway payment.

        Returns ``{"verified": bool, "order_ids": [...], "payment_status": ...}``.
        A bad signature is a normal outcome here: the orders are marked failed
        and that change must be committed, so the caller raises afterwards.
        """
        order_ids = _decode_ids(command.order_ids)
        orders = load_orders_for_verification(command.user_id, order_ids, command.gateway_order_id)
        order_repo = current_domain.repository_for(Order)

        secret = get_settings().gateway_key_secret
        if not verify_signature(command.gateway_order_id, command.gateway_payment_id, command.signature, secret):
            logger.warning(
                "payment_signature_mismatch",
                user_id=str(command.user_id),
                order_ids=order_ids,
                gateway_order_id=command.gateway_order_id,
            )
            for order in orders:
                if order.is_awaiting_payment:
                    order.mark_payment_failed(SIGNATURE_FAILED)
                    order_repo.add(order)
            return {"verified": False, "order_ids": order_ids, "payment_status": PaymentStatus.FAILED.value}

        to_settle = [o for o in orders if o.is_awaiting_payment]
        if not to_settle:
            logger.info("payment_already_settled", order_ids=order_ids, gateway_order_id=command.gateway_order_id)
            return {"verified": True, "order_ids": order_ids, "payment_status": PaymentStatus.PAID.value}

        for order in to_settle:
            order.mark_paid(command.gateway_payment_id)
        commit_settlement(to_settle, command.user_id)

        logger.info(
            "payment_settled",
            user_id=str(command.user_id),
            order_ids=[str(o.id) for o in to_settle],
            skipped=len(orders) - len(to_settle),
            gateway_payment_id=command.gateway_payment_id,
        )
        return {"verified": True, "order_ids": order_ids, "payment_status": PaymentStatus.PAID.value}

    @handle(MarkPaymentFailed)
    def mark_payment_failed(self, command):
        order_repo = current_domain.repository_for(Order)
        marked = []
        for order_id in _decode_ids(command.order_ids):
            order = fetch(Order, order_id)
            if order is None or not order.belongs_to(command.user_id) or not order.is_awaiting_payment:
                continue
            order.mark_payment_failed(command.reason)
            order_repo.add(order)
            marked.append(order_id)
        return marked


# ---------------------------------------------------------------------------
# Application service
# ---------------------------------------------------------------------------
def settle_payment(user_id, order_ids, gateway_order_id, gateway_payment_id, signature) -> dict:
    """Verify a payment callback and settle its orders, failing closed.

    Raises PaymentVerificationFailed for a bad signature (after the orders
    were marked failed) and SettlementFailed when the commit itself broke,
    in which case the orders are marked failed in a fresh unit of work.
    """
    order_ids = _decode_ids(order_ids)
    command = VerifyPayment(
        user_id=user_id,
        order_ids=json.dumps(order_ids),
        gateway_order_id=gateway_order_id,
        gateway_payment_id=gateway_payment_id,
        signature=signature,
    )

    try:
        result = current_domain.process(command, asynchronous=False)
    except (BadRequest, NotFoundError, AuthorizationError):
        # rejected before anything changed
        raise
    except ExpectedVersionError as exc:
        raise ConcurrentUpdate("A concurrent checkout changed the same records; retry the request") from exc
    except Exception as exc:
        logger.error(
            "settlement_failed",
            user_id=str(user_id),
            order_ids=order_ids,
            gateway_order_id=gateway_order_id,
            error=str(exc),
            exc_info=True,
        )
        current_domain.process(
            MarkPaymentFailed(user_id=user_id, order_ids=json.dumps(order_ids), reason=SETTLEMENT_NOT_COMMITTED),
            asynchronous=False,
        )
        raise SettlementFailed("Payment could not be settled; the orders were marked failed") from exc

    if not result["verified"]:
        raise PaymentVerificationFailed("Payment verification failed")

    return {"order_ids": result["order_ids"], "payment_status": result["payment_status"]}
