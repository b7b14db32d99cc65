"""Stock validator.

Advisory only: it runs when orders are placed, but stock can still be taken
by another checkout before payment. The authoritative decrement happens at
settlement (Product.deduct_stock).
"""

from checkout.errors import InsufficientStock, ProductUnavailable


def check_available(product, requested_qty: int) -> None:
    """Raise unless ``requested_qty`` units of ``product`` can be sold right now."""
    if not product.is_sellable:
        raise ProductUnavailable(
            f"Product '{product.name}' is not available for purchase",
            product_id=str(product.id),
        )
    if requested_qty > (product.stock_count or 0):
        raise InsufficientStock(
            f"Insufficient stock for '{product.name}': requested {requested_qty}, available {product.stock_count}",
            product_id=str(product.id),
            requested=requested_qty,
            available=product.stock_count,
        )
