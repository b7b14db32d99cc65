from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    from checkout.api.auth import reset_session_resolver
    from checkout.api.rate_limit import reset_checkout_limiter
    from checkout.config import reset_settings
    from checkout.payment.gateway import reset_gateway

    with checkout_bed.domain_context():
        yield

    reset_settings()
    reset_gateway()
    reset_checkout_limiter()
    reset_session_resolver()


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------
@pytest.fixture()
def gateway():
    from checkout.payment.gateway import FakeGateway, set_gateway

    fake = FakeGateway()
    set_gateway(fake)
    return fake


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------
USER_ID = "user-001"
OTHER_USER_ID = "user-002"


@pytest.fixture()
def user_id():
    return USER_ID


@pytest.fixture()
def make_product():
    from checkout.catalogue.product import Product

    def _make(shop_id="shop-a", name="Brass Lamp", price=1000.0, stock_count=10, status="active", **kwargs):
        product = Product(shop_id=shop_id, name=name, price=price, stock_count=stock_count, status=status, **kwargs)
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def make_coupon():
    from checkout.coupon.coupon import Coupon

    def _make(code="WELCOME10", discount_type="percentage", value=10.0, **kwargs):
        coupon = Coupon(code=code, discount_type=discount_type, value=value, **kwargs)
        current_domain.repository_for(Coupon).add(coupon)
        return coupon

    return _make


@pytest.fixture()
def make_address():
    from checkout.address.address import Address

    def _make(user_id=USER_ID, **kwargs):
        fields = {
            "full_name": "Asha Rao",
            "phone": "+91-9800000000",
            "line1": "12 MG Road",
            "city": "Bengaluru",
            "state": "Karnataka",
            "postal_code": "560001",
            "country": "IN",
        }
        fields.update(kwargs)
        address = Address(user_id=user_id, **fields)
        current_domain.repository_for(Address).add(address)
        return address

    return _make


@pytest.fixture()
def address(make_address):
    return make_address()


@pytest.fixture()
def shop_products(make_product):
    """Two shops, one product each, priced so each shop order totals 1280 with default settings."""
    return {
        "shop-a": make_product(shop_id="shop-a", name="Brass Lamp", price=1000.0, stock_count=10),
        "shop-b": make_product(shop_id="shop-b", name="Silk Scarf", price=500.0, stock_count=10),
    }


@pytest.fixture()
def expired_window():
    now = datetime.now(UTC)
    return {"valid_from": now - timedelta(days=10), "valid_until": now - timedelta(days=1)}
