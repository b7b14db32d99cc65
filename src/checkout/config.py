"""Checkout settings.

Read from the environment once and cached. Tests swap them with
set_settings() / reset_settings(), the same way the payment gateway is swapped.
"""

import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class CheckoutSettings:
    tax_rate: Decimal = Decimal("0.18")
    free_shipping_threshold: Decimal = Decimal("5000")
    flat_shipping_fee: Decimal = Decimal("100")
    currency: str = "INR"
    gateway: str = "fake"
    gateway_key_id: str = ""
    gateway_key_secret: str = "dev-gateway-secret"
    rate_limit_requests: int = 10
    rate_limit_window_seconds: int = 60

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        defaults = cls()
        return cls(
            tax_rate=Decimal(os.getenv("CHECKOUT_TAX_RATE", str(defaults.tax_rate))),
            free_shipping_threshold=Decimal(
                os.getenv("CHECKOUT_FREE_SHIPPING_THRESHOLD", str(defaults.free_shipping_threshold))
            ),
            flat_shipping_fee=Decimal(os.getenv("CHECKOUT_FLAT_SHIPPING_FEE", str(defaults.flat_shipping_fee))),
            currency=os.getenv("CHECKOUT_CURRENCY", defaults.currency),
            gateway=os.getenv("PAYMENT_GATEWAY", defaults.gateway).lower(),
            gateway_key_id=os.getenv("PAYMENT_GATEWAY_KEY_ID", defaults.gateway_key_id),
            gateway_key_secret=os.getenv("PAYMENT_GATEWAY_KEY_SECRET", defaults.gateway_key_secret),
            rate_limit_requests=int(os.getenv("CHECKOUT_RATE_LIMIT_REQUESTS", defaults.rate_limit_requests)),
            rate_limit_window_seconds=int(
                os.getenv("CHECKOUT_RATE_LIMIT_WINDOW_SECONDS", defaults.rate_limit_window_seconds)
            ),
        )


_current_settings: CheckoutSettings | None = None


def get_settings() -> CheckoutSettings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = CheckoutSettings.from_env()
    return _current_settings


def set_settings(settings: CheckoutSettings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Forget overrides; the next get_settings() re-reads the environment."""
    global _current_settings
    _current_settings = None
