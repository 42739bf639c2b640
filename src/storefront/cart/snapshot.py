"""Cart snapshot reader.

Checkout works from an immutable picture of the buyer's cart taken at the
start of the Unit of Work: every line paired with the product's current
price, stock and owning store. Rows for the same product are merged into a
single line (quantities summed) in the order they were first added. The ids
of every row read are kept so checkout deletes exactly those rows.
"""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.cart.cart import CartLine
from storefront.catalogue.product import Product


@dataclass(frozen=True)
class SnapshotLine:
    product_id: str
    store_id: str | None
    name: str | None
    quantity: int
    unit_price: int | None  # Minor units; None when the product no longer exists
    available_stock: int
    is_available: bool

    @property
    def subtotal(self) -> int:
        return self.quantity * (self.unit_price or 0)


@dataclass(frozen=True)
class CartSnapshot:
    buyer_id: str
    lines: tuple[SnapshotLine, ...]
    cart_line_ids: tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total(self) -> int:
        return sum(line.subtotal for line in self.lines)


def read_cart_snapshot(buyer_id) -> CartSnapshot:
    rows = current_domain.repository_for(CartLine).for_buyer(buyer_id)
    product_repo = current_domain.repository_for(Product)

    quantities: dict[str, int] = {}
    for row in rows:
        key = str(row.product_id)
        quantities[key] = quantities.get(key, 0) + row.quantity

    lines = []
    for product_id, quantity in quantities.items():
        try:
            product = product_repo.get(product_id)
        except ObjectNotFoundError:
            # Deleted from the catalogue; checkout reports it as out of stock
            lines.append(
                SnapshotLine(
                    product_id=product_id,
                    store_id=None,
                    name=None,
                    quantity=quantity,
                    unit_price=None,
                    available_stock=0,
                    is_available=False,
                )
            )
            continue

        lines.append(
            SnapshotLine(
                product_id=product_id,
                store_id=str(product.store_id),
                name=product.name,
                quantity=quantity,
                unit_price=product.unit_price,
                available_stock=product.stock,
                is_available=bool(product.is_available),
            )
        )

    return CartSnapshot(
        buyer_id=str(buyer_id),
        lines=tuple(lines),
        cart_line_ids=tuple(str(row.id) for row in rows),
    )
