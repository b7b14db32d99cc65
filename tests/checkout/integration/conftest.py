import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    from checkout.api.errors import register_error_handlers
    from checkout.api.routes import cart_router, checkout_router, order_router

    app = FastAPI()
    app.include_router(checkout_router)
    app.include_router(cart_router)
    app.include_router(order_router)
    register_exception_handlers(app)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def auth_headers(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture()
def order_body(address, shop_products):
    return {
        "shipping_address_id": str(address.id),
        "payment_method": "gateway",
        "shop_orders": [
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
        ],
    }
