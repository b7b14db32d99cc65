"""Pydantic request/response schemas for the Checkout API.

These are external contracts, kept apart from the internal Protean commands.
"""

from typing import Literal

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShopOrderItemSchema(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    variant: str | None = Field(None, max_length=100)


class ShopOrderSchema(BaseModel):
    shop_id: str = Field(..., min_length=1)
    shop_name: str | None = Field(None, max_length=255)
    items: list[ShopOrderItemSchema] = Field(..., min_length=1)
    coupon_code: str | None = Field(None, max_length=50)


class OrderSummarySchema(BaseModel):
    id: str
    human_order_id: str
    shop_id: str
    shop_name: str | None = None
    total: float


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address_id": "addr-001",
                    "payment_method": "gateway",
                    "shop_orders": [
                        {
                            "shop_id": "shop-a",
                            "shop_name": "Acme Crafts",
                            "items": [{"product_id": "prod-001", "quantity": 2}],
                            "coupon_code": "WELCOME10",
                        }
                    ],
                    "notes": "Leave at the door",
                }
            ]
        }
    }

    shipping_address_id: str = Field(..., min_length=1)
    billing_address_id: str | None = None
    payment_method: Literal["gateway", "cod"]
    shop_orders: list[ShopOrderSchema] = Field(..., min_length=1)
    notes: str | None = Field(None, max_length=1000)


class VerifyPaymentRequest(BaseModel):
    """Either ``order_ids`` or a single ``order_id`` must be given."""

    order_ids: list[str] | None = None
    order_id: str | None = None
    gateway_order_id: str = Field(..., min_length=1)
    gateway_payment_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _require_order_ids(self):
        if not self.order_ids and not self.order_id:
            raise ValueError("order_ids or order_id is required")
        return self

    def resolved_order_ids(self) -> list[str]:
        return list(self.order_ids or [self.order_id])


# ---------------------------------------------------------------------------
# Checkout Response Schemas
# ---------------------------------------------------------------------------
class CreateOrderResponse(BaseModel):
    orders: list[OrderSummarySchema]
    gateway_order_id: str | None = None
    amount: int
    currency: str
    total: float


class VerifyPaymentResponse(BaseModel):
    order_ids: list[str]
    payment_status: str


class ShopPreviewSchema(BaseModel):
    shop_id: str
    items: list[dict]
    coupon_code: str | None = None
    subtotal: float
    discount: float
    shipping: float
    tax: float
    total: float


class CheckoutPreviewResponse(BaseModel):
    shops: list[ShopPreviewSchema]
    total: float
    currency: str


# ---------------------------------------------------------------------------
# Cart Schemas
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1, le=100)
    variant: str | None = Field(None, max_length=100)


class ApplyCouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    shop_id: str | None = None


class CartItemSchema(BaseModel):
    id: str
    product_id: str
    shop_id: str
    quantity: int
    variant: str | None = None


class CartResponse(BaseModel):
    items: list[CartItemSchema] = []
    item_count: int = 0


class CartItemIdResponse(BaseModel):
    item_id: str


class CouponPreviewResponse(BaseModel):
    code: str
    shop_id: str
    subtotal: float
    discount: float
    shipping: float
    tax: float
    total: float
    free_shipping: bool


# ---------------------------------------------------------------------------
# Order Schemas
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    product_id: str
    product_name: str
    product_image: str | None = None
    variant: str | None = None
    unit_price: float
    quantity: int
    subtotal: float
    oversold_quantity: int = 0


class OrderDetailResponse(BaseModel):
    id: str
    human_order_id: str
    shop_id: str
    shop_name: str | None = None
    items: list[OrderItemSchema]
    pricing: dict
    coupon: dict | None = None
    shipping_address: dict | None = None
    billing_address: dict | None = None
    payment_method: str
    payment_status: str
    order_status: str
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    payment_error: str | None = None
    notes: str | None = None
    needs_reconciliation: bool = False
    paid_at: str | None = None
    created_at: str | None = None


class StatusResponse(BaseModel):
    status: str = "ok"
