"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (the default)
- RazorpayGateway when PAYMENT_GATEWAY=razorpay
"""

from checkout.config import get_settings
from checkout.payment.gateway.fake_adapter import FakeGateway
from checkout.payment.gateway.port import GatewayOrder, PaymentGateway
from checkout.payment.gateway.razorpay_adapter import RazorpayGateway

__all__ = ["FakeGateway", "GatewayOrder", "PaymentGateway", "RazorpayGateway", "get_gateway", "reset_gateway", "set_gateway"]

_current_gateway: PaymentGateway | None = None


def _build_from_settings() -> PaymentGateway:
    settings = get_settings()
    if settings.gateway == "razorpay":
        return RazorpayGateway(settings.gateway_key_id, settings.gateway_key_secret)
    return FakeGateway()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_from_settings()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the gateway chosen by settings."""
    global _current_gateway
    _current_gateway = None
