"""Shopping Cart aggregate: one per customer, lines grouped later by shop.

The cart is a plain CQRS aggregate. It never holds prices: lines are priced
from the current catalogue whenever the cart is previewed or checked out.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from checkout.cart.events import CartCleared, CartItemAdded, CartItemRemoved
from checkout.domain import checkout


@checkout.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    variant = String(max_length=100)
    added_at = DateTime()


@checkout.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def add_item(self, product_id, shop_id, quantity, variant=None):
        """Add a line, or increase the quantity of the matching product + variant line."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = next(
            (
                i
                for i in self.items
                if str(i.product_id) == str(product_id) and (i.variant or None) == (variant or None)
            ),
            None,
        )

        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
            item_id = str(existing.id)
        else:
            item = CartItem(
                product_id=product_id,
                shop_id=shop_id,
                quantity=quantity,
                variant=variant,
                added_at=now,
            )
            self.add_items(item)
            item_id = str(item.id)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=item_id,
                product_id=str(product_id),
                shop_id=str(shop_id),
                quantity=quantity,
            )
        )
        return item_id

    def remove_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))

    def clear(self, reason="checkout", order_ids=None):
        """Drop every line. Clearing an empty cart is a no-op."""
        if self.is_empty:
            return

        removed = list(self.items)
        for item in removed:
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                items_removed=len(removed),
                reason=reason,
                order_ids=json.dumps(list(order_ids or [])),
            )
        )


@checkout.repository(part_of=ShoppingCart)
class CartRepository:
    def for_customer(self, customer_id) -> ShoppingCart | None:
        carts = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return self.get(carts[0].id) if carts else None
