"""Configurable fake payment gateway for development and testing.

No external calls. It records every call, can be told to fail, and can
produce a correctly signed payment for one of its orders so the whole
place-then-verify flow can be driven end to end.
"""

from uuid import uuid4

from checkout.config import get_settings
from checkout.errors import GatewayUnavailable
from checkout.payment.gateway.port import GatewayOrder, PaymentGateway
from checkout.payment.signature import sign


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, key_secret: str | None = None) -> None:
        self.key_secret = key_secret
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway timeout"
        self.calls: list[dict] = []
        self.orders: dict[str, GatewayOrder] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway timeout") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrder:
        self.calls.append(
            {
                "method": "create_order",
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            }
        )

        if not self.should_succeed:
            raise GatewayUnavailable(f"Payment gateway error: {self.failure_reason}")

        order = GatewayOrder(id=f"order_fake{uuid4().hex[:14]}", amount=amount, currency=currency, receipt=receipt)
        self.orders[order.id] = order
        return order

    def simulate_payment(self, gateway_order_id: str) -> dict:
        """Pretend the customer paid; returns the callback fields the gateway would post."""
        payment_id = f"pay_fake{uuid4().hex[:14]}"
        secret = self.key_secret or get_settings().gateway_key_secret
        return {
            "gateway_order_id": gateway_order_id,
            "gateway_payment_id": payment_id,
            "signature": sign(gateway_order_id, payment_id, secret),
        }
