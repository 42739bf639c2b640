"""Payment recording: the guarded steps around every gateway call.

Settling an order is split so that no gateway call is made while the domain
write guard is held:

1. ``OpenPayment`` claims the order for a gateway call (or reports why none
   is needed) and persists a PENDING payment,
2. the gateway is called outside any Unit of Work,
3. one of ``RecordPaymentSuccess``, ``RecordPaymentFailure``,
   ``RecordPaymentSource``, ``RecordPendingCharge`` or
   ``MarkPaymentUnresolved`` records the answer and drives the order:
   success confirms it, failure cancels it and gives the stock back, and
   the rest leave it pending.

Claiming moves the payment to PENDING under the guard, so two concurrent
settlements of one order can never both reach the gateway.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.fulfillment import cancel_and_release
from storefront.order.order import Order, OrderStatus
from storefront.payments.methods import PaymentMethod
from storefront.payments.payment import Payment, PaymentStatus

logger = structlog.get_logger(__name__)

PAYMENT_ACTOR = "payment-gateway"


class ClaimAction(Enum):
    CALL_GATEWAY = "call_gateway"
    ALREADY_SETTLED = "already_settled"
    ALREADY_FAILED = "already_failed"
    IN_FLIGHT = "in_flight"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


@dataclass(frozen=True)
class PaymentClaim:
    order_id: str
    method: PaymentMethod
    action: ClaimAction
    amount: int
    currency: str
    payment_id: str | None = None
    idempotency_key: str | None = None
    reason: str | None = None
    source_id: str | None = None
    scannable_image_url: str | None = None
    authorize_uri: str | None = None


@storefront.command(part_of="Payment")
class OpenPayment:
    order_id = Identifier(required=True)
    method = String(required=True, choices=PaymentMethod)
    amount = Integer(min_value=0)  # Minor units; checked against the order total when given


@storefront.command(part_of="Payment")
class RecordPaymentSource:
    payment_id = Identifier(required=True)
    source_id = String(required=True, max_length=255)
    scannable_image_url = String(max_length=1000)


@storefront.command(part_of="Payment")
class RecordPendingCharge:
    """The gateway holds the charge until the buyer completes 3-D Secure."""

    payment_id = Identifier(required=True)
    charge_id = String(required=True, max_length=255)
    authorize_uri = String(max_length=1000)


@storefront.command(part_of="Payment")
class RecordPaymentSuccess:
    payment_id = Identifier(required=True)
    charge_id = String(max_length=255)


@storefront.command(part_of="Payment")
class RecordPaymentFailure:
    payment_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    charge_id = String(max_length=255)


@storefront.command(part_of="Payment")
class MarkPaymentUnresolved:
    payment_id = Identifier(required=True)
    detail = String(max_length=500)


def apply_success(payment: Payment, charge_id=None) -> None:
    """Mark ``payment`` succeeded and confirm its order. Idempotent."""
    if PaymentStatus(payment.status) == PaymentStatus.SUCCEEDED:
        return

    payment.record_success(charge_id=charge_id)
    current_domain.repository_for(Payment).add(payment)

    order_repo = current_domain.repository_for(Order)
    order = order_repo.get(str(payment.order_id))
    if OrderStatus(order.status) == OrderStatus.PENDING:
        order.confirm(actor=PAYMENT_ACTOR)
        order_repo.add(order)
    elif OrderStatus(order.status) == OrderStatus.CANCELLED:
        # Money moved for an order that was cancelled while the charge was in flight
        logger.error(
            "Payment succeeded for a cancelled order",
            order_id=str(order.id),
            payment_id=str(payment.id),
            charge_id=payment.charge_id,
        )

    logger.info("Payment succeeded", order_id=str(payment.order_id), payment_id=str(payment.id))


def apply_failure(payment: Payment, reason: str, charge_id=None) -> None:
    """Mark ``payment`` failed, then cancel its pending order and release the stock. Idempotent."""
    if PaymentStatus(payment.status) == PaymentStatus.FAILED:
        return

    payment.record_failure(reason=reason, charge_id=charge_id)
    current_domain.repository_for(Payment).add(payment)

    order = current_domain.repository_for(Order).get(str(payment.order_id))
    if OrderStatus(order.status) == OrderStatus.PENDING:
        cancel_and_release(order, reason=f"Payment failed: {reason}", actor=PAYMENT_ACTOR)

    logger.info("Payment failed", order_id=str(payment.order_id), payment_id=str(payment.id), reason=reason)


@storefront.command_handler(part_of=Payment)
class PaymentRecordingHandler:
    @handle(OpenPayment)
    def open_payment(self, command) -> PaymentClaim:
        order = current_domain.repository_for(Order).get(str(command.order_id))
        method = PaymentMethod(command.method)

        if method.value != order.payment_method:
            raise ValidationError(
                {"payment_method": [f"Order {order.id} is paid by {order.payment_method}, not {method.value}"]}
            )
        if command.amount is not None and command.amount != order.total_amount:
            raise ValidationError(
                {"amount": [f"Amount {command.amount} does not match order total {order.total_amount}"]}
            )

        def claim(action, payment=None, reason=None):
            return PaymentClaim(
                order_id=str(order.id),
                method=method,
                action=action,
                amount=order.total_amount,
                currency=order.currency,
                payment_id=str(payment.id) if payment else None,
                idempotency_key=payment.idempotency_key if payment else None,
                reason=reason,
                source_id=payment.source_id if payment else None,
                scannable_image_url=payment.scannable_image_url if payment else None,
                authorize_uri=payment.authorize_uri if payment else None,
            )

        if order.is_settled:
            return claim(ClaimAction.ALREADY_SETTLED)
        if OrderStatus(order.status) == OrderStatus.CANCELLED:
            return claim(ClaimAction.ALREADY_FAILED, reason=order.cancellation_reason)
        if method == PaymentMethod.COD:
            return claim(ClaimAction.AWAITING_CONFIRMATION)

        repo = current_domain.repository_for(Payment)
        payment = repo.for_order(order.id)
        if payment is None:
            payment = Payment.open(
                order_id=order.id,
                method=method.value,
                amount=order.total_amount,
                currency=order.currency,
            )
            repo.add(payment)
            return claim(ClaimAction.CALL_GATEWAY, payment)

        status = PaymentStatus(payment.status)
        if status == PaymentStatus.UNRESOLVED:
            payment.retry()
            repo.add(payment)
            return claim(ClaimAction.CALL_GATEWAY, payment)
        if status == PaymentStatus.PENDING:
            return claim(ClaimAction.IN_FLIGHT, payment)
        if status == PaymentStatus.AWAITING_CONFIRMATION:
            return claim(ClaimAction.AWAITING_CONFIRMATION, payment)
        if status == PaymentStatus.SUCCEEDED:
            # Recorded earlier without confirming the order; finish the job
            order.confirm(actor=PAYMENT_ACTOR)
            current_domain.repository_for(Order).add(order)
            return claim(ClaimAction.ALREADY_SETTLED, payment)

        cancel_and_release(order, reason=f"Payment failed: {payment.failure_reason}", actor=PAYMENT_ACTOR)
        return claim(ClaimAction.ALREADY_FAILED, payment, reason=payment.failure_reason)

    @handle(RecordPaymentSource)
    def record_source(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        payment.await_confirmation(
            source_id=command.source_id,
            scannable_image_url=command.scannable_image_url,
        )
        repo.add(payment)

    @handle(RecordPendingCharge)
    def record_pending_charge(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        if PaymentStatus(payment.status) == PaymentStatus.AWAITING_CONFIRMATION:
            return
        payment.await_authorization(charge_id=command.charge_id, authorize_uri=command.authorize_uri)
        repo.add(payment)
        logger.info(
            "Card charge awaiting authorization",
            order_id=str(payment.order_id),
            payment_id=str(payment.id),
            charge_id=command.charge_id,
        )

    @handle(RecordPaymentSuccess)
    def record_success(self, command):
        payment = current_domain.repository_for(Payment).get(command.payment_id)
        apply_success(payment, charge_id=command.charge_id)

    @handle(RecordPaymentFailure)
    def record_failure(self, command):
        payment = current_domain.repository_for(Payment).get(command.payment_id)
        apply_failure(payment, reason=command.reason, charge_id=command.charge_id)

    @handle(MarkPaymentUnresolved)
    def mark_unresolved(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        if PaymentStatus(payment.status) != PaymentStatus.PENDING:
            return
        payment.mark_unresolved(detail=command.detail)
        repo.add(payment)
        logger.warning("Payment outcome unknown", order_id=str(payment.order_id), payment_id=str(payment.id))
