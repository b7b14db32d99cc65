"""Integration tests for the cart and order read endpoints."""


def _add(client, headers, product, quantity=1):
    response = client.post("/cart/items", json={"product_id": str(product.id), "quantity": quantity}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["item_id"]


class TestCartEndpoints:
    def test_empty_cart(self, client, auth_headers):
        response = client.get("/cart", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"items": [], "item_count": 0}

    def test_add_and_list(self, client, auth_headers, shop_products):
        _add(client, auth_headers, shop_products["shop-a"], 2)
        _add(client, auth_headers, shop_products["shop-b"])

        data = client.get("/cart", headers=auth_headers).json()
        assert data["item_count"] == 3
        assert {i["shop_id"] for i in data["items"]} == {"shop-a", "shop-b"}

    def test_remove(self, client, auth_headers, shop_products):
        item_id = _add(client, auth_headers, shop_products["shop-a"])
        response = client.delete(f"/cart/items/{item_id}", headers=auth_headers)
        assert response.status_code == 200
        assert client.get("/cart", headers=auth_headers).json()["items"] == []

    def test_carts_are_per_user(self, client, auth_headers, shop_products):
        _add(client, auth_headers, shop_products["shop-a"])
        other = client.get("/cart", headers={"X-User-Id": "user-002"}).json()
        assert other["items"] == []

    def test_unknown_product(self, client, auth_headers):
        response = client.post("/cart/items", json={"product_id": "ghost"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "product_not_found"


class TestCartCoupon:
    def test_preview(self, client, auth_headers, shop_products, make_coupon):
        make_coupon(code="WELCOME10", value=10.0)
        _add(client, auth_headers, shop_products["shop-a"])

        response = client.post("/cart/coupon", json={"code": "WELCOME10"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["total"] == 1180.0

    def test_unknown_code_is_404(self, client, auth_headers, shop_products):
        _add(client, auth_headers, shop_products["shop-a"])
        response = client.post("/cart/coupon", json={"code": "NOPE"}, headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Invalid coupon code", "code": "coupon_not_found"}

    def test_inapplicable_is_400_with_reason(self, client, auth_headers, shop_products, make_coupon):
        make_coupon(code="CAPPED", value=10.0, usage_limit=1, used_count=1)
        _add(client, auth_headers, shop_products["shop-a"])
        response = client.post("/cart/coupon", json={"code": "CAPPED"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Coupon usage limit reached", "code": "coupon_not_applicable"}


class TestOrderRead:
    def test_owner_reads_order(self, client, order_body, auth_headers, gateway):
        created = client.post("/checkout/orders", json=order_body, headers=auth_headers).json()
        order_id = created["orders"][0]["id"]

        response = client.get(f"/orders/{order_id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["payment_status"] == "awaiting"
        assert data["pricing"]["total"] == 1280.0
        assert data["items"][0]["product_name"] == "Brass Lamp"
        assert data["shipping_address"]["city"] == "Bengaluru"

    def test_other_user_is_forbidden(self, client, order_body, auth_headers, gateway):
        created = client.post("/checkout/orders", json=order_body, headers=auth_headers).json()
        response = client.get(f"/orders/{created['orders'][0]['id']}", headers={"X-User-Id": "user-002"})
        assert response.status_code == 403

    def test_missing_order(self, client, auth_headers):
        response = client.get("/orders/nope", headers=auth_headers)
        assert response.status_code == 404
