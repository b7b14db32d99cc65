"""FastAPI routes for checkout, the cart and order reads."""

import json

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from checkout.api.auth import get_current_user
from checkout.api.rate_limit import enforce_checkout_rate_limit
from checkout.api.schemas import (
    AddCartItemRequest,
    ApplyCouponRequest,
    CartItemIdResponse,
    CartResponse,
    CheckoutPreviewResponse,
    CouponPreviewResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    OrderDetailResponse,
    StatusResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from checkout.cart.cart import ShoppingCart
from checkout.cart.items import AddToCart, RemoveFromCart
from checkout.cart.preview import preview_checkout, preview_coupon
from checkout.errors import BadRequest, Forbidden, OrderNotFound
from checkout.order.creation import PlaceOrders
from checkout.order.order import Order
from checkout.order.settlement import settle_payment
from checkout.store import fetch

# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post(
    "/orders",
    status_code=201,
    response_model=CreateOrderResponse,
    dependencies=[Depends(enforce_checkout_rate_limit)],
)
async def create_order(body: CreateOrderRequest, user_id: str = Depends(get_current_user)) -> CreateOrderResponse:
    """Split the checkout into one order per shop and open a gateway order if paying online."""
    command = PlaceOrders(
        user_id=user_id,
        shipping_address_id=body.shipping_address_id,
        billing_address_id=body.billing_address_id,
        payment_method=body.payment_method,
        shop_orders=json.dumps([shop.model_dump() for shop in body.shop_orders]),
        notes=body.notes,
    )
    result = current_domain.process(command, asynchronous=False)
    return CreateOrderResponse(**result)


@checkout_router.post("/verify-payment", response_model=VerifyPaymentResponse)
async def verify_payment(body: VerifyPaymentRequest, user_id: str = Depends(get_current_user)) -> VerifyPaymentResponse:
    """Check the gateway's signature and settle the orders it paid for."""
    result = settle_payment(
        user_id=user_id,
        order_ids=body.resolved_order_ids(),
        gateway_order_id=body.gateway_order_id,
        gateway_payment_id=body.gateway_payment_id,
        signature=body.signature,
    )
    return VerifyPaymentResponse(**result)


def _parse_coupon_params(coupons: list[str]) -> dict:
    parsed = {}
    for entry in coupons:
        shop_id, sep, code = entry.partition(":")
        if not sep or not shop_id or not code:
            raise BadRequest("Coupons must be given as shop_id:CODE")
        parsed[shop_id] = code
    return parsed


@checkout_router.get("/preview", response_model=CheckoutPreviewResponse)
async def checkout_preview(
    coupon: list[str] = Query(default=[]),
    user_id: str = Depends(get_current_user),
) -> CheckoutPreviewResponse:
    """Price the cart per shop without placing anything. ``coupon`` is ``shop_id:CODE``, repeatable."""
    return CheckoutPreviewResponse(**preview_checkout(user_id, _parse_coupon_params(coupon)))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(user_id: str = Depends(get_current_user)) -> CartResponse:
    cart = current_domain.repository_for(ShoppingCart).for_customer(user_id)
    if cart is None:
        return CartResponse()
    items = [
        {
            "id": str(item.id),
            "product_id": str(item.product_id),
            "shop_id": str(item.shop_id),
            "quantity": item.quantity,
            "variant": item.variant,
        }
        for item in cart.items
    ]
    return CartResponse(items=items, item_count=sum(i["quantity"] for i in items))


@cart_router.post("/items", status_code=201, response_model=CartItemIdResponse)
async def add_cart_item(body: AddCartItemRequest, user_id: str = Depends(get_current_user)) -> CartItemIdResponse:
    command = AddToCart(
        customer_id=user_id,
        product_id=body.product_id,
        quantity=body.quantity,
        variant=body.variant,
    )
    item_id = current_domain.process(command, asynchronous=False)
    return CartItemIdResponse(item_id=item_id)


@cart_router.delete("/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(item_id: str, user_id: str = Depends(get_current_user)) -> StatusResponse:
    current_domain.process(RemoveFromCart(customer_id=user_id, item_id=item_id), asynchronous=False)
    return StatusResponse(status="removed")


@cart_router.post("/coupon", response_model=CouponPreviewResponse)
async def apply_coupon(body: ApplyCouponRequest, user_id: str = Depends(get_current_user)) -> CouponPreviewResponse:
    """Show what a coupon would take off the cart. Nothing is reserved or counted."""
    return CouponPreviewResponse(**preview_coupon(user_id, body.code, body.shop_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _isoformat(value):
    return value.isoformat() if value else None


def _order_detail(order: Order) -> dict:
    return {
        "id": str(order.id),
        "human_order_id": order.human_order_id,
        "shop_id": str(order.shop_id),
        "shop_name": order.shop_name,
        "items": [
            {
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "product_image": item.product_image,
                "variant": item.variant,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "subtotal": item.subtotal,
                "oversold_quantity": item.oversold_quantity or 0,
            }
            for item in order.items
        ],
        "pricing": order.pricing.to_dict(),
        "coupon": order.coupon.to_dict() if order.coupon else None,
        "shipping_address": order.shipping_address.to_dict() if order.shipping_address else None,
        "billing_address": order.billing_address.to_dict() if order.billing_address else None,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "order_status": order.order_status,
        "gateway_order_id": order.gateway_order_id,
        "gateway_payment_id": order.gateway_payment_id,
        "payment_error": order.payment_error,
        "notes": order.notes,
        "needs_reconciliation": bool(order.needs_reconciliation),
        "paid_at": _isoformat(order.paid_at),
        "created_at": _isoformat(order.created_at),
    }


@order_router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: str, user_id: str = Depends(get_current_user)) -> OrderDetailResponse:
    order = fetch(Order, order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found")
    if not order.belongs_to(user_id):
        raise Forbidden("You do not have access to this order")
    return OrderDetailResponse(**_order_detail(order))
