"""Cart line management: commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.cart.cart import ShoppingCart
from checkout.catalogue.product import Product
from checkout.domain import checkout
from checkout.errors import NotFoundError, ProductNotFound, ProductUnavailable
from checkout.store import fetch


@checkout.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    variant = String(max_length=100)


@checkout.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


@checkout.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = fetch(Product, command.product_id)
        if product is None:
            raise ProductNotFound(f"Product {command.product_id} not found")
        if not product.is_sellable:
            raise ProductUnavailable(f"{product.name} is not available")

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id) or ShoppingCart.create(command.customer_id)
        item_id = cart.add_item(
            product_id=command.product_id,
            shop_id=product.shop_id,
            quantity=command.quantity,
            variant=command.variant,
        )
        repo.add(cart)
        return item_id

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_customer(command.customer_id)
        if cart is None:
            raise NotFoundError("Cart is empty")
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)
