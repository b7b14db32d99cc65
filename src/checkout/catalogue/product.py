"""Product aggregate: the sellable listing as checkout sees it.

Only the fields settlement needs: price, stock count and status. Listing
management (titles, media, variants) belongs to the seller tools.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.catalogue.events import StockDeducted, StockOversold
from checkout.domain import checkout


class ProductStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"
    ARCHIVED = "archived"


@checkout.aggregate
class Product:
    shop_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    image = String(max_length=1000)
    price = Float(required=True, min_value=0.0)
    stock_count = Integer(default=0, min_value=0)
    status = String(choices=ProductStatus, default=ProductStatus.ACTIVE.value)
    updated_at = DateTime()

    @property
    def is_sellable(self) -> bool:
        return self.status == ProductStatus.ACTIVE.value

    def deduct_stock(self, quantity, order_ids=None) -> int:
        """Take ``quantity`` units out of stock, never going below zero.

        Returns the shortfall: how many of the requested units were not
        covered by stock. A non-zero shortfall also raises StockOversold.
        """
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity to deduct must be at least 1"]})

        previous = self.stock_count or 0
        deducted = min(quantity, previous)
        shortfall = quantity - deducted
        now = datetime.now(UTC)
        order_ids_json = json.dumps(list(order_ids or []))

        self.stock_count = previous - deducted
        self.updated_at = now

        self.raise_(
            StockDeducted(
                product_id=str(self.id),
                quantity=deducted,
                previous_stock=previous,
                new_stock=self.stock_count,
                order_ids=order_ids_json,
                deducted_at=now,
            )
        )
        if shortfall:
            self.raise_(
                StockOversold(
                    product_id=str(self.id),
                    requested=quantity,
                    shortfall=shortfall,
                    order_ids=order_ids_json,
                    detected_at=now,
                )
            )
        return shortfall
