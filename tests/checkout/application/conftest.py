import json

import pytest
from protean import current_domain


@pytest.fixture()
def place_orders(user_id, address):
    """Process PlaceOrders with sensible defaults; returns the handler's result."""
    from checkout.order.creation import PlaceOrders

    def _place(shop_orders, payment_method="gateway", **overrides):
        fields = {
            "user_id": user_id,
            "shipping_address_id": str(address.id),
            "payment_method": payment_method,
            "shop_orders": json.dumps(shop_orders),
        }
        fields.update(overrides)
        return current_domain.process(PlaceOrders(**fields), asynchronous=False)

    return _place


@pytest.fixture()
def two_shop_request(shop_products):
    return [
        {
            "shop_id": "shop-a",
            "shop_name": "Acme Crafts",
            "items": [{"product_id": str(shop_products["shop-a"].id), "quantity": 1}],
        },
        {
            "shop_id": "shop-b",
            "shop_name": "Silk Route",
            "items": [{"product_id": str(shop_products["shop-b"].id), "quantity": 2}],
        },
    ]


@pytest.fixture()
def fill_cart(user_id):
    from checkout.cart.items import AddToCart

    def _fill(*lines):
        for product, quantity in lines:
            current_domain.process(
                AddToCart(customer_id=user_id, product_id=str(product.id), quantity=quantity),
                asynchronous=False,
            )

    return _fill

