"""Order aggregate and its fulfillment state machine.

State Machine:
    pending → confirmed → shipped → delivered
    pending | confirmed → cancelled

Any other move raises ``InvalidTransition`` and leaves the order untouched.
Every accepted move is appended to ``history`` together with the actor that
made it, so the observed sequence of statuses can be audited.

Order lines are frozen copies of the cart at purchase time: the unit price
recorded here never follows later catalogue price changes.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.errors import InvalidTransition
from storefront.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderPlaced,
    OrderShipped,
)
from storefront.payments.methods import PaymentMethod
from storefront.shared.money import default_currency


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


@storefront.entity(part_of="Order")
class OrderLine:
    product_id = Identifier(required=True)
    store_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)  # Minor units, frozen at purchase

    @property
    def subtotal(self):
        return self.quantity * self.unit_price


@storefront.entity(part_of="Order")
class StatusChange:
    status = String(choices=OrderStatus, required=True)
    actor = String(required=True, max_length=100)
    changed_at = DateTime(required=True)


@storefront.aggregate
class Order:
    buyer_id = Identifier(required=True)
    lines = HasMany(OrderLine)
    history = HasMany(StatusChange)
    total_amount = Integer(required=True, min_value=0)  # Minor units
    currency = String(max_length=3, default="THB")
    shipping_address = Text(required=True)
    phone = String(required=True, max_length=50)
    payment_method = String(choices=PaymentMethod, required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_matches_lines(self):
        if not self.lines:
            return
        expected = sum(line.quantity * line.unit_price for line in self.lines)
        if self.total_amount != expected:
            raise ValidationError(
                {"total_amount": [f"Order total {self.total_amount} does not match the sum of its lines ({expected})"]}
            )

    @classmethod
    def place(cls, buyer_id, lines, shipping_address, phone, payment_method, currency=None):
        """Create a pending order from ``(product_id, store_id, quantity, unit_price)`` items.

        ``lines`` is any iterable of objects exposing those four attributes,
        typically the lines of a cart snapshot.
        """
        if not lines:
            raise ValidationError({"lines": ["An order needs at least one line"]})

        now = datetime.now(UTC)
        order_lines = [
            OrderLine(
                product_id=line.product_id,
                store_id=line.store_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            for line in lines
        ]
        order = cls(
            buyer_id=buyer_id,
            lines=order_lines,
            history=[StatusChange(status=OrderStatus.PENDING.value, actor="buyer", changed_at=now)],
            total_amount=sum(line.subtotal for line in order_lines),
            currency=currency or default_currency(),
            shipping_address=shipping_address,
            phone=phone,
            payment_method=PaymentMethod(payment_method).value,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                buyer_id=str(buyer_id),
                lines=json.dumps(
                    [
                        {
                            "product_id": str(line.product_id),
                            "store_id": str(line.store_id),
                            "quantity": line.quantity,
                            "unit_price": line.unit_price,
                        }
                        for line in order_lines
                    ]
                ),
                total_amount=order.total_amount,
                currency=order.currency,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def store_ids(self) -> set[str]:
        return {str(line.store_id) for line in self.lines}

    @property
    def is_settled(self) -> bool:
        """Confirmed or further along the happy path."""
        return OrderStatus(self.status) in (OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED)

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in _VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _transition(self, target: OrderStatus, actor: str):
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.add_history(StatusChange(status=target.value, actor=actor, changed_at=now))
        return current, now

    def confirm(self, actor):
        _, now = self._transition(OrderStatus.CONFIRMED, actor)
        self.raise_(OrderConfirmed(order_id=str(self.id), actor=actor, confirmed_at=now))

    def ship(self, actor):
        _, now = self._transition(OrderStatus.SHIPPED, actor)
        self.raise_(OrderShipped(order_id=str(self.id), actor=actor, shipped_at=now))

    def deliver(self, actor):
        _, now = self._transition(OrderStatus.DELIVERED, actor)
        self.raise_(OrderDelivered(order_id=str(self.id), actor=actor, delivered_at=now))

    def cancel(self, reason, actor):
        """Cancel the order. The caller is responsible for returning the stock."""
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A cancellation reason is required"]})

        previous, now = self._transition(OrderStatus.CANCELLED, actor)
        self.cancellation_reason = reason
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=previous.value,
                reason=reason,
                actor=actor,
                cancelled_at=now,
            )
        )
