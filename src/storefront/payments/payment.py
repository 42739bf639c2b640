"""Payment aggregate: one gateway payment per order.

State Machine:
    PENDING → SUCCEEDED | FAILED | AWAITING_CONFIRMATION | UNRESOLVED
    AWAITING_CONFIRMATION → SUCCEEDED | FAILED
    UNRESOLVED → PENDING (retry) | SUCCEEDED | FAILED | AWAITING_CONFIRMATION

PENDING means a gateway call is in flight. UNRESOLVED means that call timed
out and nobody knows yet whether money moved. AWAITING_CONFIRMATION is a QR
source waiting to be paid, or a card charge waiting for 3-D Secure. The
idempotency key is the order id, so every retry of a charge reaches the
gateway as the same request.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from storefront.domain import storefront
from storefront.payments.events import (
    PaymentAuthorizationRequired,
    PaymentAwaitingConfirmation,
    PaymentFailed,
    PaymentOpened,
    PaymentSucceeded,
    PaymentUnresolved,
    QrPaymentAcknowledged,
)
from storefront.payments.methods import PaymentMethod


class PaymentStatus(Enum):
    PENDING = "pending"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNRESOLVED = "unresolved"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {
        PaymentStatus.SUCCEEDED,
        PaymentStatus.FAILED,
        PaymentStatus.AWAITING_CONFIRMATION,
        PaymentStatus.UNRESOLVED,
    },
    PaymentStatus.AWAITING_CONFIRMATION: {PaymentStatus.SUCCEEDED, PaymentStatus.FAILED},
    PaymentStatus.UNRESOLVED: {
        PaymentStatus.PENDING,
        PaymentStatus.SUCCEEDED,
        PaymentStatus.FAILED,
        PaymentStatus.AWAITING_CONFIRMATION,
    },
    PaymentStatus.SUCCEEDED: set(),  # Terminal
    PaymentStatus.FAILED: set(),  # Terminal
}


@storefront.entity(part_of="Payment")
class PaymentAttempt:
    """A record of a single gateway interaction."""

    attempted_at = DateTime(required=True)
    outcome = String(max_length=50, required=True)
    detail = String(max_length=500)


@storefront.aggregate
class Payment:
    order_id = Identifier(required=True)
    method = String(choices=PaymentMethod, required=True)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    amount = Integer(required=True, min_value=0)  # Minor units
    currency = String(max_length=3, required=True)
    idempotency_key = String(required=True, max_length=255)
    charge_id = String(max_length=255)
    source_id = String(max_length=255)
    scannable_image_url = String(max_length=1000)
    authorize_uri = String(max_length=1000)
    failure_reason = String(max_length=500)
    attempts = HasMany(PaymentAttempt)
    buyer_acknowledged_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, order_id, method, amount, currency):
        now = datetime.now(UTC)
        payment = cls(
            order_id=order_id,
            method=PaymentMethod(method).value,
            amount=amount,
            currency=currency,
            idempotency_key=str(order_id),
            status=PaymentStatus.PENDING.value,
            attempts=[PaymentAttempt(attempted_at=now, outcome="opened")],
            created_at=now,
            updated_at=now,
        )
        payment.raise_(
            PaymentOpened(
                payment_id=str(payment.id),
                order_id=str(order_id),
                method=payment.method,
                amount=amount,
                currency=currency,
                idempotency_key=payment.idempotency_key,
            )
        )
        return payment

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[PaymentStatus(self.status)]

    def _move_to(self, target: PaymentStatus, outcome: str, detail=None):
        current = PaymentStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot move payment from {current.value} to {target.value}"]})

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.add_attempts(PaymentAttempt(attempted_at=now, outcome=outcome, detail=detail))
        return now

    def retry(self):
        """Take an unresolved payment back in flight for another gateway call."""
        self._move_to(PaymentStatus.PENDING, "retried")

    def await_confirmation(self, source_id, scannable_image_url):
        self._move_to(PaymentStatus.AWAITING_CONFIRMATION, "source_created", source_id)
        self.source_id = source_id
        self.scannable_image_url = scannable_image_url

        self.raise_(
            PaymentAwaitingConfirmation(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                source_id=source_id,
                scannable_image_url=scannable_image_url,
            )
        )

    def await_authorization(self, charge_id, authorize_uri=None):
        """A card charge exists at the gateway but waits for the buyer's 3-D Secure step."""
        self._move_to(PaymentStatus.AWAITING_CONFIRMATION, "authorization_required", charge_id)
        self.charge_id = charge_id
        self.authorize_uri = authorize_uri

        self.raise_(
            PaymentAuthorizationRequired(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                charge_id=charge_id,
                authorize_uri=authorize_uri,
            )
        )

    def record_success(self, charge_id=None):
        now = self._move_to(PaymentStatus.SUCCEEDED, "succeeded", charge_id)
        if charge_id:
            self.charge_id = charge_id

        self.raise_(
            PaymentSucceeded(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                amount=self.amount,
                charge_id=self.charge_id,
                succeeded_at=now,
            )
        )

    def record_failure(self, reason, charge_id=None):
        now = self._move_to(PaymentStatus.FAILED, "failed", reason)
        self.failure_reason = reason
        if charge_id:
            self.charge_id = charge_id

        self.raise_(
            PaymentFailed(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason,
                failed_at=now,
            )
        )

    def mark_unresolved(self, detail):
        self._move_to(PaymentStatus.UNRESOLVED, "unresolved", detail)

        self.raise_(
            PaymentUnresolved(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                detail=detail,
            )
        )

    def acknowledge_by_buyer(self):
        """Record the buyer's "I have paid". Never changes the payment status."""
        if PaymentMethod(self.method) != PaymentMethod.QR:
            raise ValidationError({"method": ["Only QR payments can be acknowledged by the buyer"]})
        if PaymentStatus(self.status) == PaymentStatus.FAILED:
            raise ValidationError({"status": ["Payment has already failed"]})

        now = datetime.now(UTC)
        self.buyer_acknowledged_at = now
        self.updated_at = now

        self.raise_(
            QrPaymentAcknowledged(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                acknowledged_at=now,
            )
        )
