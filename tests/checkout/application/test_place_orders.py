"""Tests for order placement (PlaceOrders)."""

import pytest
from checkout.cart.cart import ShoppingCart
from checkout.catalogue.product import Product
from checkout.coupon.coupon import Coupon
from checkout.errors import (
    AddressNotFound,
    BadRequest,
    Forbidden,
    GatewayUnavailable,
    InsufficientStock,
    OrderRejected,
    ProductNotFound,
    ProductUnavailable,
)
from checkout.order.order import Order, OrderStatus, PaymentStatus
from protean import current_domain


def get(aggregate_cls, identifier):
    return current_domain.repository_for(aggregate_cls).get(str(identifier))


def all_orders():
    return current_domain.repository_for(Order)._dao.query.all().items


class TestGatewayCheckout:
    def test_one_order_per_shop_with_scenario_totals(self, place_orders, two_shop_request, gateway):
        result = place_orders(two_shop_request)

        assert [o["total"] for o in result["orders"]] == [1280.0, 1280.0]
        assert result["total"] == 2560.0
        assert result["amount"] == 256000
        assert result["currency"] == "INR"
        assert len(all_orders()) == 2

    def test_single_gateway_order_for_the_grand_total(self, place_orders, two_shop_request, gateway):
        result = place_orders(two_shop_request)

        assert len(gateway.calls) == 1
        assert gateway.calls[0]["amount"] == 256000
        for summary in result["orders"]:
            order = get(Order, summary["id"])
            assert order.gateway_order_id == result["gateway_order_id"]

    def test_orders_await_payment_and_stock_is_untouched(self, place_orders, two_shop_request, shop_products, gateway):
        result = place_orders(two_shop_request)

        for summary in result["orders"]:
            order = get(Order, summary["id"])
            assert order.payment_status == PaymentStatus.AWAITING.value
            assert order.order_status == OrderStatus.PENDING_PAYMENT.value
        assert get(Product, shop_products["shop-a"].id).stock_count == 10
        assert get(Product, shop_products["shop-b"].id).stock_count == 10

    def test_cart_is_kept_until_payment(self, place_orders, two_shop_request, shop_products, fill_cart, user_id, gateway):
        fill_cart((shop_products["shop-a"], 1))
        place_orders(two_shop_request)

        cart = current_domain.repository_for(ShoppingCart).for_customer(user_id)
        assert len(cart.items) == 1

    def test_summary_shape(self, place_orders, two_shop_request, gateway):
        summary = place_orders(two_shop_request)["orders"][0]
        assert set(summary) == {"id", "human_order_id", "shop_id", "shop_name", "total"}
        assert summary["shop_name"] == "Acme Crafts"
        assert summary["human_order_id"].startswith("ORD-")

    def test_gateway_failure_writes_nothing(self, place_orders, two_shop_request, gateway):
        gateway.configure(should_succeed=False)
        with pytest.raises(GatewayUnavailable):
            place_orders(two_shop_request)
        assert all_orders() == []


class TestCoupons:
    def test_welcome10_takes_ten_percent_off_one_shop(self, place_orders, two_shop_request, make_coupon, gateway):
        make_coupon(code="WELCOME10", value=10.0)
        two_shop_request[0]["coupon_code"] = "welcome10"

        result = place_orders(two_shop_request)

        assert [o["total"] for o in result["orders"]] == [1180.0, 1280.0]
        order = get(Order, result["orders"][0]["id"])
        assert order.pricing.discount == 100.0
        assert order.coupon.code == "WELCOME10"

    def test_lower_case_stored_code_applies(self, place_orders, two_shop_request, make_coupon, gateway):
        make_coupon(code="welcome10", value=10.0, shop_id="shop-a")
        two_shop_request[0]["coupon_code"] = "welcome10"

        result = place_orders(two_shop_request)

        assert [o["total"] for o in result["orders"]] == [1180.0, 1280.0]

    def test_usage_is_not_counted_at_placement(self, place_orders, two_shop_request, make_coupon, gateway):
        coupon = make_coupon(code="WELCOME10", value=10.0, usage_limit=5)
        two_shop_request[0]["coupon_code"] = "WELCOME10"
        place_orders(two_shop_request)
        assert get(Coupon, coupon.id).used_count == 0

    def test_inapplicable_coupon_is_ignored(self, place_orders, two_shop_request, make_coupon, gateway):
        make_coupon(code="BIGSPEND", value=10.0, min_purchase=5000.0)
        two_shop_request[0]["coupon_code"] = "BIGSPEND"

        result = place_orders(two_shop_request)

        assert result["orders"][0]["total"] == 1280.0
        assert get(Order, result["orders"][0]["id"]).coupon is None

    def test_unknown_coupon_is_ignored(self, place_orders, two_shop_request, gateway):
        two_shop_request[0]["coupon_code"] = "NOPE"
        assert place_orders(two_shop_request)["total"] == 2560.0

    def test_coupon_at_cap_is_ignored(self, place_orders, two_shop_request, make_coupon, gateway):
        make_coupon(code="LAST", value=10.0, usage_limit=1, used_count=1)
        two_shop_request[0]["coupon_code"] = "LAST"
        assert place_orders(two_shop_request)["orders"][0]["total"] == 1280.0

    def test_free_shipping_coupon(self, place_orders, two_shop_request, make_coupon, gateway):
        make_coupon(code="SHIPFREE", discount_type="free_shipping", value=0.0, shop_id="shop-b")
        two_shop_request[1]["coupon_code"] = "SHIPFREE"
        result = place_orders(two_shop_request)
        assert result["orders"][1]["total"] == 1180.0


class TestRejections:
    def test_insufficient_stock_rejects_whole_request(self, place_orders, two_shop_request, make_product, gateway):
        scarce = make_product(shop_id="shop-b", name="Rare Print", price=200.0, stock_count=3)
        two_shop_request[1]["items"].append({"product_id": str(scarce.id), "quantity": 5})

        with pytest.raises(InsufficientStock):
            place_orders(two_shop_request)
        assert all_orders() == []
        assert gateway.calls == []

    def test_stock_is_checked_across_shop_entries(self, place_orders, make_product, gateway):
        scarce = make_product(shop_id="shop-a", stock_count=3)
        request = [
            {"shop_id": "shop-a", "items": [{"product_id": str(scarce.id), "quantity": 2}]},
            {"shop_id": "shop-a", "items": [{"product_id": str(scarce.id), "quantity": 2}]},
        ]
        with pytest.raises(InsufficientStock):
            place_orders(request)

    def test_same_shop_entries_are_merged(self, place_orders, make_product, gateway):
        lamp = make_product(shop_id="shop-a", price=1000.0)
        request = [
            {"shop_id": "shop-a", "items": [{"product_id": str(lamp.id), "quantity": 1}]},
            {"shop_id": "shop-a", "items": [{"product_id": str(lamp.id), "quantity": 1}]},
        ]
        result = place_orders(request)
        assert len(result["orders"]) == 1
        order = get(Order, result["orders"][0]["id"])
        assert order.items[0].quantity == 2

    def test_product_from_another_shop(self, place_orders, shop_products, gateway):
        request = [{"shop_id": "shop-a", "items": [{"product_id": str(shop_products["shop-b"].id), "quantity": 1}]}]
        with pytest.raises(OrderRejected):
            place_orders(request)

    def test_unknown_product(self, place_orders, gateway):
        with pytest.raises(ProductNotFound):
            place_orders([{"shop_id": "shop-a", "items": [{"product_id": "ghost", "quantity": 1}]}])

    def test_unsellable_product(self, place_orders, make_product, gateway):
        draft = make_product(status="draft")
        with pytest.raises(ProductUnavailable):
            place_orders([{"shop_id": "shop-a", "items": [{"product_id": str(draft.id), "quantity": 1}]}])

    def test_empty_shop_orders(self, place_orders, gateway):
        with pytest.raises(BadRequest):
            place_orders([])

    def test_missing_address(self, place_orders, two_shop_request, gateway):
        with pytest.raises(AddressNotFound):
            place_orders(two_shop_request, shipping_address_id="addr-missing")

    def test_someone_elses_address(self, place_orders, two_shop_request, make_address, gateway):
        foreign = make_address(user_id="user-002")
        with pytest.raises(Forbidden):
            place_orders(two_shop_request, shipping_address_id=str(foreign.id))

    def test_someone_elses_billing_address(self, place_orders, two_shop_request, make_address, gateway):
        foreign = make_address(user_id="user-002")
        with pytest.raises(Forbidden):
            place_orders(two_shop_request, billing_address_id=str(foreign.id))


class TestAddresses:
    def test_billing_defaults_to_shipping(self, place_orders, two_shop_request, address, gateway):
        result = place_orders(two_shop_request)
        order = get(Order, result["orders"][0]["id"])
        assert order.billing_address.line1 == address.line1

    def test_separate_billing_address(self, place_orders, two_shop_request, make_address, gateway):
        billing = make_address(line1="1 Office Park")
        result = place_orders(two_shop_request, billing_address_id=str(billing.id))
        order = get(Order, result["orders"][0]["id"])
        assert order.billing_address.line1 == "1 Office Park"
        assert order.shipping_address.line1 == "12 MG Road"


class TestCashOnDelivery:
    def test_orders_are_pending_and_confirmed(self, place_orders, two_shop_request, gateway):
        result = place_orders(two_shop_request, payment_method="cod")

        assert result["gateway_order_id"] is None
        assert gateway.calls == []
        for summary in result["orders"]:
            order = get(Order, summary["id"])
            assert order.payment_status == PaymentStatus.PENDING.value
            assert order.order_status == OrderStatus.CONFIRMED.value

    def test_stock_is_deducted_immediately(self, place_orders, two_shop_request, shop_products, gateway):
        place_orders(two_shop_request, payment_method="cod")
        assert get(Product, shop_products["shop-a"].id).stock_count == 9
        assert get(Product, shop_products["shop-b"].id).stock_count == 8

    def test_coupon_usage_and_cart(self, place_orders, two_shop_request, shop_products, make_coupon, fill_cart, user_id, gateway):
        coupon = make_coupon(code="WELCOME10", value=10.0)
        two_shop_request[0]["coupon_code"] = "WELCOME10"
        fill_cart((shop_products["shop-a"], 1), (shop_products["shop-b"], 2))

        place_orders(two_shop_request, payment_method="cod")

        assert get(Coupon, coupon.id).used_count == 1
        cart = current_domain.repository_for(ShoppingCart).for_customer(user_id)
        assert cart.is_empty
