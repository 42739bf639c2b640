"""Inventory ledger: conditional stock reservation against Product rows.

A ledger instance belongs to one Unit of Work. ``reserve`` is a
check-and-decrement: it succeeds only when the product is available and has
at least the requested units, otherwise it raises ``InsufficientStock`` and
leaves the product untouched. Nothing reaches the repository until
``commit``; ``rollback`` hands back every reservation taken so far.

Callers run inside ``storefront.dispatch.write_guard`` (every command does),
so two checkouts can never both observe the same stock count.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.errors import InsufficientStock

logger = structlog.get_logger(__name__)


class InventoryLedger:
    def __init__(self):
        self._repo = current_domain.repository_for(Product)
        self._products: dict[str, Product] = {}
        self._reservations: list[tuple[str, int]] = []

    def _load(self, product_id) -> Product:
        key = str(product_id)
        if key not in self._products:
            self._products[key] = self._repo.get(key)
        return self._products[key]

    def reserve(self, product_id, quantity: int) -> Product:
        """Take ``quantity`` units of ``product_id`` or raise ``InsufficientStock``."""
        try:
            product = self._load(product_id)
        except ObjectNotFoundError as exc:
            raise InsufficientStock(product_id, requested=quantity, available=0) from exc

        if not product.can_supply(quantity):
            available = product.stock if product.is_available else 0
            raise InsufficientStock(product_id, requested=quantity, available=available)

        product.take_stock(quantity)
        self._reservations.append((str(product_id), quantity))
        return product

    def release(self, product_id, quantity: int) -> Product | None:
        """Put ``quantity`` units back. A product deleted since is skipped."""
        try:
            product = self._load(product_id)
        except ObjectNotFoundError:
            logger.warning("Cannot release stock for missing product", product_id=str(product_id), quantity=quantity)
            return None

        product.return_stock(quantity)
        return product

    def rollback(self) -> None:
        """Undo every reservation taken through this ledger, newest first."""
        while self._reservations:
            product_id, quantity = self._reservations.pop()
            self._products[product_id].return_stock(quantity)

    def commit(self) -> None:
        """Persist every product touched by this ledger in the current Unit of Work."""
        for product in self._products.values():
            self._repo.add(product)
        self._reservations.clear()

    @property
    def reserved(self) -> list[tuple[str, int]]:
        return list(self._reservations)
