"""Repository for the Order aggregate.

Every finder returns the full match: queries drop Protean's default page
size of 100, since history counts and payout totals must cover every order.
"""

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.repository(part_of=Order)
class OrderRepository:
    def for_buyer(self, buyer_id) -> list[Order]:
        """A buyer's orders, newest first."""
        orders = self._dao.query.filter(buyer_id=str(buyer_id)).limit(None).all().items
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def with_status(self, status) -> list[Order]:
        return self._dao.query.filter(status=status).limit(None).all().items

    def all_orders(self) -> list[Order]:
        return self._dao.query.limit(None).all().items
