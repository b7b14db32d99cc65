"""Order aggregate: one shop's share of a checkout.

Orders are plain CQRS aggregates. Everything a customer was quoted (item
names, prices, coupon, addresses) is snapshotted at placement, so later
catalogue or address-book edits never change an order.

Payment lifecycle:
    gateway:  awaiting / pending_payment → paid / confirmed
                                         → failed / payment_failed
    cod:      pending / confirmed (settled at placement)
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from checkout.domain import checkout
from checkout.order.events import (
    OrderFlaggedForReconciliation,
    OrderPaid,
    OrderPaymentFailed,
    OrderPlaced,
)
from checkout.pricing import order_total, to_decimal


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PaymentMethod(Enum):
    GATEWAY = "gateway"
    COD = "cod"


class PaymentStatus(Enum):
    AWAITING = "awaiting"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class OrderStatus(Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    PAYMENT_FAILED = "payment_failed"


_PAYMENT_TRANSITIONS = {
    PaymentStatus.AWAITING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PENDING: set(),  # COD, collected on delivery
    PaymentStatus.PAID: set(),
    PaymentStatus.FAILED: set(),
}

# Totals are stored as floats; anything closer than this is the same amount.
_TOTAL_TOLERANCE = 0.005


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Order")
class AddressSnapshot:
    full_name = String(required=True, max_length=255)
    phone = String(max_length=30)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@checkout.value_object(part_of="Order")
class OrderPricing:
    """Amounts quoted at checkout, in major currency units."""

    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    shipping = Float(default=0.0)
    tax = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="INR")


@checkout.value_object(part_of="Order")
class CouponSnapshot:
    """The coupon as it was applied; usage is counted against ``coupon_id``."""

    coupon_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    discount_type = String(required=True, max_length=20)
    value = Float(default=0.0)
    discount_amount = Float(default=0.0)
    free_shipping = Boolean(default=False)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    product_image = String(max_length=1000)
    variant = String(max_length=100)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    subtotal = Float(required=True, min_value=0.0)
    oversold_quantity = Integer(default=0, min_value=0)  # units paid for but not covered by stock


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
def generate_human_order_id(now: datetime | None = None) -> str:
    """``ORD-YYYYMMDD-XXXXXX``, the id shown to customers and sellers."""
    now = now or datetime.now(UTC)
    return f"ORD-{now:%Y%m%d}-{uuid4().hex[:6].upper()}"


@checkout.aggregate
class Order:
    human_order_id = String(required=True, max_length=30)
    user_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    shop_name = String(max_length=255)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    coupon = ValueObject(CouponSnapshot)
    shipping_address = ValueObject(AddressSnapshot)
    billing_address = ValueObject(AddressSnapshot)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.AWAITING.value)
    order_status = String(choices=OrderStatus, default=OrderStatus.PENDING_PAYMENT.value)
    gateway_order_id = String(max_length=100)
    gateway_payment_id = String(max_length=100)
    payment_error = String(max_length=500)
    notes = Text()
    needs_reconciliation = Boolean(default=False)
    reconciliation_notes = Text()  # JSON: list of {reason, details}
    paid_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_matches_its_components(self):
        if self.pricing is None:
            return
        expected = order_total(self.pricing.subtotal, self.pricing.shipping, self.pricing.tax, self.pricing.discount)
        if abs(to_decimal(self.pricing.total) - expected) > to_decimal(_TOTAL_TOLERANCE):
            raise ValidationError({"pricing": ["Order total must equal subtotal + shipping + tax - discount"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        *,
        user_id,
        shop_id,
        shop_name,
        items,
        pricing,
        payment_method,
        shipping_address,
        billing_address,
        coupon=None,
        notes=None,
        gateway_order_id=None,
    ):
        """Create an order from a priced shop draft.

        Args:
            items: list of dicts with product_id, product_name, product_image,
                variant, unit_price, quantity, subtotal.
            pricing: dict with subtotal, discount, shipping, tax, total, currency.
            shipping_address / billing_address: address snapshot dicts.
            coupon: coupon snapshot dict, or None when no coupon applied.
        """
        method = PaymentMethod(payment_method)
        now = datetime.now(UTC)

        if method is PaymentMethod.COD:
            payment_status, order_status = PaymentStatus.PENDING, OrderStatus.CONFIRMED
        else:
            payment_status, order_status = PaymentStatus.AWAITING, OrderStatus.PENDING_PAYMENT

        order = cls(
            human_order_id=generate_human_order_id(now),
            user_id=user_id,
            shop_id=shop_id,
            shop_name=shop_name,
            items=[OrderItem(**item) for item in items],
            pricing=OrderPricing(**pricing),
            coupon=CouponSnapshot(**coupon) if coupon else None,
            shipping_address=AddressSnapshot(**shipping_address),
            billing_address=AddressSnapshot(**billing_address),
            payment_method=method.value,
            payment_status=payment_status.value,
            order_status=order_status.value,
            gateway_order_id=gateway_order_id,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                human_order_id=order.human_order_id,
                user_id=str(user_id),
                shop_id=str(shop_id),
                payment_method=method.value,
                payment_status=payment_status.value,
                total=order.pricing.total,
                currency=order.pricing.currency,
                coupon_code=coupon["code"] if coupon else None,
                gateway_order_id=gateway_order_id,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_cod(self) -> bool:
        return self.payment_method == PaymentMethod.COD.value

    @property
    def is_awaiting_payment(self) -> bool:
        return self.payment_status == PaymentStatus.AWAITING.value

    @property
    def is_failed(self) -> bool:
        return self.payment_status == PaymentStatus.FAILED.value

    def belongs_to(self, user_id) -> bool:
        return str(self.user_id) == str(user_id)

    # -------------------------------------------------------------------
    # Payment transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: PaymentStatus):
        current = PaymentStatus(self.payment_status)
        if target not in _PAYMENT_TRANSITIONS[current]:
            raise ValidationError(
                {"payment_status": [f"Cannot move payment from {current.value} to {target.value}"]}
            )

    def mark_paid(self, gateway_payment_id, paid_at=None):
        self._assert_can_transition(PaymentStatus.PAID)

        now = paid_at or datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.order_status = OrderStatus.CONFIRMED.value
        self.gateway_payment_id = gateway_payment_id
        self.payment_error = None
        self.paid_at = now
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                gateway_order_id=self.gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                total=self.pricing.total,
                paid_at=now,
            )
        )

    def mark_payment_failed(self, reason):
        self._assert_can_transition(PaymentStatus.FAILED)

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.FAILED.value
        self.order_status = OrderStatus.PAYMENT_FAILED.value
        self.payment_error = reason
        self.updated_at = now

        self.raise_(
            OrderPaymentFailed(
                order_id=str(self.id),
                gateway_order_id=self.gateway_order_id,
                reason=reason,
                failed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------
    def flag_for_reconciliation(self, reason, **details):
        now = datetime.now(UTC)
        notes = json.loads(self.reconciliation_notes) if self.reconciliation_notes else []
        notes.append({"reason": reason, **details})

        self.needs_reconciliation = True
        self.reconciliation_notes = json.dumps(notes)
        self.updated_at = now

        self.raise_(
            OrderFlaggedForReconciliation(
                order_id=str(self.id),
                reason=reason,
                details=json.dumps(details),
                flagged_at=now,
            )
        )

    def record_shortfall(self, product_id, quantity) -> int:
        """Attribute up to ``quantity`` unfulfillable units of a product to this order.

        Returns how many units were attributed; the rest belongs to other orders.
        """
        remaining = quantity
        for item in self.items:
            if remaining <= 0:
                break
            if str(item.product_id) != str(product_id):
                continue
            taken = min(item.quantity - (item.oversold_quantity or 0), remaining)
            if taken > 0:
                item.oversold_quantity = (item.oversold_quantity or 0) + taken
                remaining -= taken

        attributed = quantity - remaining
        if attributed:
            self.flag_for_reconciliation("stock_oversold", product_id=str(product_id), quantity=attributed)
        return attributed

    def to_summary(self) -> dict:
        return {
            "id": str(self.id),
            "human_order_id": self.human_order_id,
            "shop_id": str(self.shop_id),
            "shop_name": self.shop_name,
            "total": self.pricing.total,
        }

