"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or its line quantity increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    shop_id = Identifier(required=True)
    quantity = Integer(required=True)


@checkout.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@checkout.event(part_of="ShoppingCart")
class CartCleared:
    """Every line left the cart because the customer checked out."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items_removed = Integer(required=True)
    reason = String(max_length=50)
    order_ids = Text()  # JSON: list of order ids
