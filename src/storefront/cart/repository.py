"""Repository for the CartLine aggregate."""

from storefront.cart.cart import CartLine
from storefront.domain import storefront


@storefront.repository(part_of=CartLine)
class CartLineRepository:
    def for_buyer(self, buyer_id) -> list[CartLine]:
        """All cart rows of a buyer, oldest first."""
        # No limit: a checkout must see every row of the cart
        lines = self._dao.query.filter(buyer_id=str(buyer_id)).limit(None).all().items
        return sorted(lines, key=lambda line: (line.added_at is None, line.added_at))

    def find_line(self, buyer_id, product_id) -> CartLine | None:
        """The first row for (buyer, product), or None."""
        for line in self.for_buyer(buyer_id):
            if str(line.product_id) == str(product_id):
                return line
        return None

    def remove(self, line: CartLine) -> None:
        self._dao.delete(line)
