"""Order placement: the cart to order transaction.

``PlaceOrder`` runs as one Unit of Work under the domain write guard:

1. read an immutable snapshot of the buyer's cart,
2. reserve stock for every line through the inventory ledger,
3. create the pending Order with frozen unit prices,
4. delete exactly the cart rows that were snapshotted.

The first line that cannot be reserved aborts the whole transaction: the
reservations already taken are handed back and nothing is persisted. Because
the guard is held for the whole Unit of Work, a second checkout of the same
cart sees it already emptied and fails with ``EmptyCart``.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import CartLine
from storefront.cart.snapshot import read_cart_snapshot
from storefront.dispatch import dispatch
from storefront.domain import storefront
from storefront.errors import EmptyCart, InsufficientStock
from storefront.inventory.ledger import InventoryLedger
from storefront.order.order import Order
from storefront.payments.methods import PaymentMethod

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class PlaceOrder:
    buyer_id = Identifier(required=True)
    shipping_address = Text(required=True)
    phone = String(required=True, max_length=50)
    payment_method = String(required=True, choices=PaymentMethod)


def _require_contact_details(command):
    errors = {}
    if not (command.shipping_address or "").strip():
        errors["shipping_address"] = ["Shipping address is required"]
    if not (command.phone or "").strip():
        errors["phone"] = ["Phone number is required"]
    if errors:
        raise ValidationError(errors)


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        _require_contact_details(command)

        snapshot = read_cart_snapshot(command.buyer_id)
        if snapshot.is_empty:
            raise EmptyCart(command.buyer_id)

        ledger = InventoryLedger()
        try:
            for line in snapshot.lines:
                ledger.reserve(line.product_id, line.quantity)
        except InsufficientStock as exc:
            ledger.rollback()
            logger.info(
                "Checkout rejected",
                buyer_id=str(command.buyer_id),
                product_id=exc.product_id,
                requested=exc.requested,
                available=exc.available,
            )
            raise

        order = Order.place(
            buyer_id=command.buyer_id,
            lines=snapshot.lines,
            shipping_address=command.shipping_address.strip(),
            phone=command.phone.strip(),
            payment_method=command.payment_method,
        )

        ledger.commit()
        current_domain.repository_for(Order).add(order)

        cart_repo = current_domain.repository_for(CartLine)
        for cart_line_id in snapshot.cart_line_ids:
            cart_repo.remove(cart_repo.get(cart_line_id))

        logger.info(
            "Order placed",
            order_id=str(order.id),
            buyer_id=str(command.buyer_id),
            total_amount=order.total_amount,
            lines=len(order.lines),
            payment_method=order.payment_method,
        )
        return str(order.id)


def place_order(buyer_id, shipping_address, phone, payment_method) -> str:
    """Convert the buyer's cart into a pending order and return its id.

    Raises ``ValidationError`` for missing contact details, ``EmptyCart`` when
    there is nothing to buy and ``InsufficientStock`` naming the first product
    that cannot be supplied.
    """
    if isinstance(payment_method, PaymentMethod):
        payment_method = payment_method.value
    return dispatch(
        PlaceOrder(
            buyer_id=buyer_id,
            shipping_address=shipping_address,
            phone=phone,
            payment_method=payment_method,
        )
    )
