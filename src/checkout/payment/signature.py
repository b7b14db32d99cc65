"""Gateway callback signatures.

The gateway signs ``"{gateway_order_id}|{gateway_payment_id}"`` with HMAC-SHA256
keyed by the merchant secret and sends the hex digest back with the payment.
"""

import hashlib
import hmac


def sign(gateway_order_id: str, gateway_payment_id: str, secret: str) -> str:
    message = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_signature(gateway_order_id: str, gateway_payment_id: str, signature: str, secret: str) -> bool:
    """Constant-time check of a callback signature. Empty input never verifies."""
    if not (gateway_order_id and gateway_payment_id and signature and secret):
        return False
    expected = sign(gateway_order_id, gateway_payment_id, secret)
    return hmac.compare_digest(expected, signature.strip().lower())
