"""Domain events for the Product aggregate (stock side only)."""

from protean.fields import DateTime, Identifier, Integer, Text

from checkout.domain import checkout


@checkout.event(part_of="Product")
class StockDeducted:
    """Units left the sellable stock because an order was paid or placed as COD."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    order_ids = Text()  # JSON: list of order ids
    deducted_at = DateTime(required=True)


@checkout.event(part_of="Product")
class StockOversold:
    """More units were paid for than were left in stock; needs manual reconciliation."""

    __version__ = 1

    product_id = Identifier(required=True)
    requested = Integer(required=True)
    shortfall = Integer(required=True)
    order_ids = Text()  # JSON: list of order ids
    detected_at = DateTime(required=True)
