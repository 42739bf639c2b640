"""Repository for the Payment aggregate."""

from storefront.domain import storefront
from storefront.payments.payment import Payment


@storefront.repository(part_of=Payment)
class PaymentRepository:
    def for_order(self, order_id) -> Payment | None:
        return self._dao.query.filter(order_id=str(order_id)).all().first

    def by_source(self, source_id) -> Payment | None:
        return self._dao.query.filter(source_id=str(source_id)).all().first

    def by_charge(self, charge_id) -> Payment | None:
        return self._dao.query.filter(charge_id=str(charge_id)).all().first

    def with_status(self, status) -> list[Payment]:
        return self._dao.query.filter(status=status).limit(None).all().items
