"""Shared BDD fixtures and step definitions for checkout settlement."""

import pytest
from checkout.catalogue.product import Product
from protean import current_domain
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the checkout error a step captured."""
    return {"exc": None}


@pytest.fixture()
def catalogue():
    """Products by name."""
    return {}


@pytest.fixture()
def basket():
    return {"lines": [], "coupons": {}}


@pytest.fixture()
def outcome():
    """What placement and settlement returned."""
    return {"placed": None, "settled": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('shop "{shop_id}" sells "{name}" at {price:g} with {stock:d} in stock'))
def shop_sells(make_product, catalogue, shop_id, name, price, stock):
    catalogue[name] = make_product(shop_id=shop_id, name=name, price=float(price), stock_count=stock)


@given("the customer has a shipping address", target_fixture="shipping_address")
def shipping_address(address):
    return address


@given(parsers.cfparse('shop "{shop_id}" offers coupon "{code}" for {percent:d} percent off'))
def shop_coupon(make_coupon, shop_id, code, percent):
    make_coupon(code=code, discount_type="percentage", value=float(percent), shop_id=shop_id)


@given(parsers.cfparse('the basket holds {quantity:d} "{name}"'))
def basket_holds(basket, catalogue, quantity, name):
    basket["lines"].append((catalogue[name], quantity))


@given(parsers.cfparse('the customer applies coupon "{code}" to shop "{shop_id}"'))
def applies_coupon(basket, code, shop_id):
    basket["coupons"][shop_id] = code


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the stock of "{name}" is {stock:d}'))
def stock_is(catalogue, name, stock):
    product = current_domain.repository_for(Product).get(str(catalogue[name].id))
    assert product.stock_count == stock


@then(parsers.cfparse('the checkout is rejected with "{code}"'))
def rejected_with(error, code):
    assert error["exc"] is not None
    assert error["exc"].code == code
