"""Payment gateway port (abstract interface).

Checkout only needs the gateway to open an order for the amount due; the
customer pays on the gateway's own page and the signed callback comes back
through payment verification.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GatewayOrder:
    """An order opened on the gateway; ``amount`` is in minor units."""

    id: str
    amount: int
    currency: str
    receipt: str
    status: str = "created"


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrder:
        """Open a gateway order for ``amount`` minor units."""
        ...
