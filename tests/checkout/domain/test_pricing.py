"""Tests for the pricing calculator."""

from decimal import Decimal

import pytest
from checkout.pricing import (
    line_subtotal,
    order_total,
    price_shop,
    round_half_up,
    shipping_fee,
    shop_subtotal,
    tax_amount,
    to_decimal,
    to_minor_units,
)

DEFAULTS = {"tax_rate": Decimal("0.18"), "free_shipping_threshold": Decimal("5000"), "flat_shipping_fee": Decimal("100")}


class TestConversions:
    def test_float_goes_through_its_string_form(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_none_is_zero(self):
        assert to_decimal(None) == Decimal("0")

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [("0.5", Decimal("1")), ("1.49", Decimal("1")), ("2.5", Decimal("3")), ("179.5", Decimal("180"))],
    )
    def test_round_half_up(self, amount, expected):
        assert round_half_up(amount) == expected

    def test_minor_units(self):
        assert to_minor_units(2560) == 256000
        assert to_minor_units("10.005") == 1001
        assert to_minor_units(0.1) == 10


class TestSubtotals:
    def test_line_subtotal(self):
        assert line_subtotal(499.5, 3) == Decimal("1498.5")

    def test_shop_subtotal_sums_lines(self):
        assert shop_subtotal([(1000.0, 1), (250.0, 2)]) == Decimal("1500")

    def test_empty_shop_subtotal_is_zero(self):
        assert shop_subtotal([]) == Decimal("0")


class TestShipping:
    def test_flat_fee_below_threshold(self):
        assert shipping_fee(4999, 5000, 100) == Decimal("100")

    def test_free_at_threshold(self):
        assert shipping_fee(5000, 5000, 100) == Decimal("0")

    def test_free_shipping_flag_wins(self):
        assert shipping_fee(10, 5000, 100, free_shipping=True) == Decimal("0")


class TestTax:
    def test_rounded_to_whole_unit(self):
        # 18% of 1234.5 is 222.21
        assert tax_amount("1234.5", "0.18") == Decimal("222")

    def test_half_rounds_up(self):
        # 18% of 25 is 4.5
        assert tax_amount(25, "0.18") == Decimal("5")


class TestShopPricing:
    def test_single_lamp_shop_order(self):
        totals = price_shop([(1000.0, 1)], **DEFAULTS)
        assert totals.subtotal == Decimal("1000")
        assert totals.shipping == Decimal("100")
        assert totals.tax == Decimal("180")
        assert totals.total == Decimal("1280")

    def test_discount_is_subtracted_after_tax(self):
        totals = price_shop([(1000.0, 1)], discount=100, **DEFAULTS)
        assert totals.total == Decimal("1180")
        # tax is computed on the undiscounted subtotal
        assert totals.tax == Decimal("180")

    def test_free_shipping_coupon(self):
        totals = price_shop([(1000.0, 1)], free_shipping=True, **DEFAULTS)
        assert totals.shipping == Decimal("0")
        assert totals.total == Decimal("1180")

    def test_total_identity_holds(self):
        totals = price_shop([(333.33, 3), (10.0, 7)], discount=50, **DEFAULTS)
        assert totals.total == order_total(totals.subtotal, totals.shipping, totals.tax, totals.discount)

    def test_as_floats(self):
        floats = price_shop([(1000.0, 1)], **DEFAULTS).as_floats()
        assert floats == {"subtotal": 1000.0, "discount": 0.0, "shipping": 100.0, "tax": 180.0, "total": 1280.0}

    def test_total_is_not_floored(self):
        assert order_total(10, 0, 0, 25) == Decimal("-15")
