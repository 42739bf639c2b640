"""Reconciliation of payments whose outcome is unknown.

A card charge that timed out leaves its payment UNRESOLVED and the order
pending with its stock still reserved. ``reconcile_unresolved_payments``
asks the gateway what happened to each such charge, looked up by the
idempotency key:

- the charge succeeded: the order is confirmed,
- the charge failed: the order is cancelled and the stock released,
- there is no charge and the payment is older than ``max_age``: the charge
  never reached the gateway, so the order is cancelled and the stock released.

Payments stuck PENDING for longer than ``max_age`` (the process died during
the gateway call) are treated the same way, and so are card charges waiting
for 3-D Secure whose webhook never came. A charge the gateway still holds as
pending stays untouched, with its charge id recorded so the webhook can find it. QR payments that never got a
source hold no money and are cancelled once they are older than ``max_age``.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog
from protean.utils.globals import current_domain

from storefront.dispatch import dispatch
from storefront.payments.gateway import get_gateway
from storefront.payments.gateway.port import GatewayUnavailable, PaymentGateway
from storefront.payments.methods import PaymentMethod
from storefront.payments.payment import Payment, PaymentStatus
from storefront.payments.recording import RecordPaymentFailure, RecordPaymentSuccess, RecordPendingCharge

logger = structlog.get_logger(__name__)

DEFAULT_MAX_AGE = timedelta(minutes=30)
ABANDONED_REASON = "Payment could not be completed"


@dataclass
class ReconciliationReport:
    confirmed: list[str] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)
    still_unresolved: list[str] = field(default_factory=list)


def _candidates(now, max_age) -> list[Payment]:
    repo = current_domain.repository_for(Payment)
    unresolved = repo.with_status(PaymentStatus.UNRESOLVED.value)
    stale_pending = [
        payment
        for payment in repo.with_status(PaymentStatus.PENDING.value)
        if payment.updated_at is not None and now - payment.updated_at > max_age
    ]
    awaiting_card = [
        payment
        for payment in repo.with_status(PaymentStatus.AWAITING_CONFIRMATION.value)
        if PaymentMethod(payment.method) == PaymentMethod.CARD
    ]
    return unresolved + stale_pending + awaiting_card


def reconcile_unresolved_payments(
    max_age: timedelta = DEFAULT_MAX_AGE, gateway: PaymentGateway | None = None
) -> ReconciliationReport:
    gateway = gateway or get_gateway()
    now = datetime.now(UTC)
    report = ReconciliationReport()

    for payment in _candidates(now, max_age):
        order_id = str(payment.order_id)
        is_old = payment.created_at is not None and now - payment.created_at > max_age

        if PaymentMethod(payment.method) == PaymentMethod.QR:
            if is_old:
                dispatch(RecordPaymentFailure(payment_id=payment.id, reason=ABANDONED_REASON))
                report.cancelled.append(order_id)
            else:
                report.still_unresolved.append(order_id)
            continue

        try:
            charge = gateway.find_charge(payment.idempotency_key)
        except GatewayUnavailable:
            logger.warning("Gateway unavailable during reconciliation", order_id=order_id)
            report.still_unresolved.append(order_id)
            continue

        if charge is not None and charge.success:
            dispatch(RecordPaymentSuccess(payment_id=payment.id, charge_id=charge.charge_id))
            report.confirmed.append(order_id)
        elif charge is not None and charge.declined:
            dispatch(
                RecordPaymentFailure(
                    payment_id=payment.id,
                    reason=charge.failure_reason or "Card declined",
                    charge_id=charge.charge_id,
                )
            )
            report.cancelled.append(order_id)
        elif charge is None and is_old:
            dispatch(RecordPaymentFailure(payment_id=payment.id, reason=ABANDONED_REASON))
            report.cancelled.append(order_id)
        elif charge is not None and charge.charge_id and payment.status != PaymentStatus.AWAITING_CONFIRMATION.value:
            dispatch(
                RecordPendingCharge(
                    payment_id=payment.id,
                    charge_id=charge.charge_id,
                    authorize_uri=charge.authorize_uri,
                )
            )
            report.still_unresolved.append(order_id)
        else:
            report.still_unresolved.append(order_id)

    logger.info(
        "Reconciliation finished",
        confirmed=len(report.confirmed),
        cancelled=len(report.cancelled),
        still_unresolved=len(report.still_unresolved),
    )
    return report
