"""Razorpay adapter, talking to the Orders REST API over HTTP."""

import requests

from checkout.errors import GatewayUnavailable
from checkout.payment.gateway.port import GatewayOrder, PaymentGateway
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

RAZORPAY_ORDERS_URL = "https://api.razorpay.com/v1/orders"


class RazorpayGateway(PaymentGateway):
    def __init__(self, key_id: str, key_secret: str, timeout: float = 10.0, session=None) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrder:
        payload = {"amount": amount, "currency": currency, "receipt": receipt, "notes": notes or {}}
        try:
            resp = self.session.post(
                RAZORPAY_ORDERS_URL,
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as exc:
            logger.error("gateway_order_failed", gateway="razorpay", receipt=receipt, error=str(exc))
            raise GatewayUnavailable("Payment gateway is unavailable, please retry") from exc
        except ValueError as exc:
            logger.error("gateway_order_failed", gateway="razorpay", receipt=receipt, error="invalid JSON response")
            raise GatewayUnavailable("Payment gateway returned an unreadable response") from exc

        return GatewayOrder(
            id=body["id"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
            receipt=body.get("receipt", receipt),
            status=body.get("status", "created"),
        )
