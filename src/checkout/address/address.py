"""Customer addresses, read-only from checkout's point of view.

Address book management happens elsewhere; checkout only resolves an id to
an address owned by the caller and copies it onto the order.
"""

from protean.fields import Identifier, String

from checkout.domain import checkout
from checkout.errors import AddressNotFound, Forbidden
from checkout.store import fetch


@checkout.aggregate
class Address:
    user_id = Identifier(required=True)
    full_name = String(required=True, max_length=255)
    phone = String(max_length=30)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)

    def snapshot(self) -> dict:
        """Plain copy of the address, suitable for an order's address value object."""
        return {
            "full_name": self.full_name,
            "phone": self.phone,
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }


def resolve_address(user_id, address_id, label: str = "shipping") -> Address:
    """Load an address and make sure it belongs to ``user_id``."""
    address = fetch(Address, address_id)
    if address is None:
        raise AddressNotFound(f"Invalid {label} address", address_id=str(address_id))
    if str(address.user_id) != str(user_id):
        raise Forbidden(f"Invalid {label} address", address_id=str(address_id))
    return address
