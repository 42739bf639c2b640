"""Seller-driven fulfillment: confirm, ship, deliver and cancel.

A seller may act on an order only when at least one of its lines belongs to
the seller's store. Sellers confirm cash-on-delivery orders themselves; card
and QR orders are confirmed by the payment flow. Cancelling returns every
line's quantity to stock in the same Unit of Work.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.dispatch import dispatch
from storefront.domain import storefront
from storefront.inventory.ledger import InventoryLedger
from storefront.order.order import Order
from storefront.payments.methods import PaymentMethod

logger = structlog.get_logger(__name__)


def seller_actor(store_id) -> str:
    return f"store:{store_id}"


def cancel_and_release(order: Order, reason: str, actor: str) -> None:
    """Cancel ``order`` and give its stock back. Persists order and products."""
    previous_status = order.status
    order.cancel(reason=reason, actor=actor)

    ledger = InventoryLedger()
    for line in order.lines:
        ledger.release(line.product_id, line.quantity)
    ledger.commit()

    current_domain.repository_for(Order).add(order)
    logger.info(
        "Order cancelled",
        order_id=str(order.id),
        previous_status=previous_status,
        reason=reason,
        actor=actor,
    )


@storefront.command(part_of="Order")
class ConfirmOrder:
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)


@storefront.command(part_of="Order")
class ShipOrder:
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)


@storefront.command(part_of="Order")
class DeliverOrder:
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


def _order_for_seller(order_id, store_id) -> Order:
    order = current_domain.repository_for(Order).get(str(order_id))
    if str(store_id) not in order.store_ids:
        raise ValidationError({"store_id": [f"Store {store_id} has no lines in order {order_id}"]})
    return order


@storefront.command_handler(part_of=Order)
class FulfillmentHandler:
    @handle(ConfirmOrder)
    def confirm_order(self, command):
        order = _order_for_seller(command.order_id, command.store_id)
        if order.payment_method != PaymentMethod.COD.value:
            raise ValidationError(
                {"payment_method": ["Only cash-on-delivery orders are confirmed by the seller"]}
            )
        order.confirm(actor=seller_actor(command.store_id))
        current_domain.repository_for(Order).add(order)

    @handle(ShipOrder)
    def ship_order(self, command):
        order = _order_for_seller(command.order_id, command.store_id)
        order.ship(actor=seller_actor(command.store_id))
        current_domain.repository_for(Order).add(order)

    @handle(DeliverOrder)
    def deliver_order(self, command):
        order = _order_for_seller(command.order_id, command.store_id)
        order.deliver(actor=seller_actor(command.store_id))
        current_domain.repository_for(Order).add(order)

    @handle(CancelOrder)
    def cancel_order(self, command):
        order = _order_for_seller(command.order_id, command.store_id)
        cancel_and_release(order, reason=command.reason, actor=seller_actor(command.store_id))


def confirm(order_id, store_id):
    dispatch(ConfirmOrder(order_id=order_id, store_id=store_id))


def ship(order_id, store_id):
    dispatch(ShipOrder(order_id=order_id, store_id=store_id))


def deliver(order_id, store_id):
    dispatch(DeliverOrder(order_id=order_id, store_id=store_id))


def cancel(order_id, store_id, reason):
    dispatch(CancelOrder(order_id=order_id, store_id=store_id, reason=reason))
