"""Read side for buyers: order history and order detail."""

from dataclasses import dataclass, field

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.order.order import Order, OrderStatus


@dataclass
class OrderHistory:
    buyer_id: str
    orders: list[Order]
    counts: dict[str, int] = field(default_factory=dict)


def order_history(buyer_id, status=None) -> OrderHistory:
    """A buyer's orders newest first, with the number of orders in each status.

    Counts always cover every order of the buyer, so a status filter narrows
    the list without changing the tabs a storefront shows above it.
    """
    if status is not None:
        try:
            status = OrderStatus(status).value
        except ValueError as exc:
            raise ValidationError({"status": [f"Unknown order status: {status}"]}) from exc

    repo = current_domain.repository_for(Order)
    every_order = repo.for_buyer(buyer_id)

    counts = {s.value: 0 for s in OrderStatus}
    for order in every_order:
        counts[order.status] += 1

    orders = [o for o in every_order if o.status == status] if status else every_order
    return OrderHistory(buyer_id=str(buyer_id), orders=orders, counts=counts)


def order_detail(order_id) -> Order:
    return current_domain.repository_for(Order).get(str(order_id))
