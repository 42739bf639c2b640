"""Product aggregate: the catalogue row the checkout reads and decrements.

Catalogue editing (images, categories, descriptions) belongs to the seller
tooling; this aggregate keeps only what order placement needs: the owning
store, the current unit price in minor units, the stock count and the
availability flag.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String

from storefront.catalogue.events import (
    ProductAvailabilityChanged,
    ProductListed,
    ProductPriceChanged,
    StockReleased,
    StockReserved,
)
from storefront.domain import storefront


@storefront.aggregate
class Product:
    store_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Integer(required=True, min_value=0)  # Minor units
    stock = Integer(default=0, min_value=0)
    is_available = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, store_id, name, unit_price, stock=0, is_available=True):
        now = datetime.now(UTC)
        product = cls(
            store_id=store_id,
            name=name,
            unit_price=unit_price,
            stock=stock,
            is_available=is_available,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductListed(
                product_id=str(product.id),
                store_id=str(store_id),
                name=name,
                unit_price=unit_price,
                stock=stock,
                listed_at=now,
            )
        )
        return product

    def change_price(self, new_price):
        if new_price < 0:
            raise ValidationError({"unit_price": ["Price cannot be negative"]})

        previous_price = self.unit_price
        self.unit_price = new_price
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductPriceChanged(
                product_id=str(self.id),
                previous_price=previous_price,
                new_price=new_price,
            )
        )

    def set_availability(self, is_available):
        self.is_available = is_available
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductAvailabilityChanged(
                product_id=str(self.id),
                is_available=is_available,
            )
        )

    # -------------------------------------------------------------------
    # Stock movements (driven by the inventory ledger)
    # -------------------------------------------------------------------
    def can_supply(self, quantity):
        return bool(self.is_available) and self.stock >= quantity

    def take_stock(self, quantity):
        """Decrement stock by ``quantity``. Callers check ``can_supply`` first."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if self.stock < quantity:
            raise ValidationError({"stock": [f"Cannot take {quantity} units, only {self.stock} in stock"]})

        previous_stock = self.stock
        self.stock = previous_stock - quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockReserved(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous_stock,
                new_stock=self.stock,
            )
        )

    def return_stock(self, quantity):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous_stock = self.stock
        self.stock = previous_stock + quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockReleased(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous_stock,
                new_stock=self.stock,
            )
        )
