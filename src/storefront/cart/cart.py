"""CartLine aggregate: one row of a buyer's cart.

A cart is the set of CartLine rows for a buyer. Rows are owned by the buyer
alone and are deleted in bulk when a checkout consumes them. The intended
shape is one row per (buyer, product); cart commands merge into the existing
row, and the snapshot reader merges whatever duplicates slipped through.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer

from storefront.cart.events import CartLineAdded, CartLineQuantityChanged
from storefront.domain import storefront


@storefront.aggregate
class CartLine:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, buyer_id, product_id, quantity):
        now = datetime.now(UTC)
        line = cls(
            buyer_id=buyer_id,
            product_id=product_id,
            quantity=quantity,
            added_at=now,
            updated_at=now,
        )
        line.raise_(
            CartLineAdded(
                cart_line_id=str(line.id),
                buyer_id=str(buyer_id),
                product_id=str(product_id),
                quantity=quantity,
            )
        )
        return line

    def add_quantity(self, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        self.change_quantity(self.quantity + quantity)

    def change_quantity(self, new_quantity):
        if new_quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        previous_quantity = self.quantity
        self.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineQuantityChanged(
                cart_line_id=str(self.id),
                buyer_id=str(self.buyer_id),
                product_id=str(self.product_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )
