"""Order placement: command and handler.

One checkout becomes one order per shop. Gateway checkouts open a single
gateway order for the combined amount and leave stock alone until payment is
verified; cash-on-delivery checkouts settle stock, coupon usage and the cart
right away, in the same unit of work that writes the orders.
"""

import json
from decimal import Decimal
from uuid import uuid4

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.address.address import resolve_address
from checkout.config import get_settings
from checkout.domain import checkout
from checkout.errors import BadRequest
from checkout.order.order import Order, PaymentMethod
from checkout.order.settlement import commit_settlement
from checkout.order.splitter import split_into_drafts
from checkout.payment.gateway import get_gateway
from checkout.pricing import to_minor_units
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


@checkout.command(part_of="Order")
class PlaceOrders:
    user_id = Identifier(required=True)
    shipping_address_id = Identifier(required=True)
    billing_address_id = Identifier()
    payment_method = String(required=True, choices=PaymentMethod)
    shop_orders = Text(required=True)  # JSON: list of shop order dicts
    notes = Text()


@checkout.command_handler(part_of=Order)
class PlaceOrdersHandler:
    @handle(PlaceOrders)
    def place_orders(self, command):
        shop_orders = json.loads(command.shop_orders) if isinstance(command.shop_orders, str) else command.shop_orders
        if not shop_orders:
            raise BadRequest("At least one shop order is required")

        method = PaymentMethod(command.payment_method)
        settings = get_settings()

        shipping = resolve_address(command.user_id, command.shipping_address_id, "shipping")
        billing_id = command.billing_address_id or command.shipping_address_id
        billing = shipping if str(billing_id) == str(shipping.id) else resolve_address(command.user_id, billing_id, "billing")

        drafts = split_into_drafts(shop_orders, settings)
        grand_total = sum((d.totals.total for d in drafts), Decimal("0"))
        amount = to_minor_units(grand_total)

        gateway_order_id = None
        if method is PaymentMethod.GATEWAY:
            gateway_order = get_gateway().create_order(
                amount,
                settings.currency,
                receipt=f"chk_{uuid4().hex[:16]}",
                notes={"user_id": str(command.user_id), "shop_count": str(len(drafts))},
            )
            gateway_order_id = gateway_order.id

        orders = [
            Order.place(
                user_id=command.user_id,
                shop_id=draft.shop_id,
                shop_name=draft.shop_name,
                items=draft.items,
                pricing=draft.pricing(settings.currency),
                payment_method=method.value,
                shipping_address=shipping.snapshot(),
                billing_address=billing.snapshot(),
                coupon=draft.coupon_snapshot,
                notes=command.notes,
                gateway_order_id=gateway_order_id,
            )
            for draft in drafts
        ]

        if method is PaymentMethod.COD:
            commit_settlement(orders, command.user_id)
        else:
            repo = current_domain.repository_for(Order)
            for order in orders:
                repo.add(order)

        logger.info(
            "orders_placed",
            user_id=str(command.user_id),
            payment_method=method.value,
            order_ids=[str(o.id) for o in orders],
            gateway_order_id=gateway_order_id,
            total=str(grand_total),
        )

        return {
            "orders": [o.to_summary() for o in orders],
            "gateway_order_id": gateway_order_id,
            "amount": amount,
            "currency": settings.currency,
            "total": float(grand_total),
        }
