"""Payment settlement: ``settle(order_id, payment)`` for every payment method.

- card: charge the one-time token synchronously. Approval confirms the
  order and a decline cancels it and releases the stock. A charge held for
  3-D Secure leaves the order pending until the webhook reports back, and a
  gateway outage leaves it pending with the payment unresolved.
- qr: create a scannable source. The order stays pending until a signed
  webhook reports the outcome.
- cod: nothing to do until the seller confirms delivery.

Settling an order that is already confirmed (or further) answers SETTLED, and
one that is cancelled answers FAILED, in both cases without contacting the
gateway.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from storefront.dispatch import dispatch
from storefront.errors import PaymentDeclined
from storefront.payments.gateway import get_gateway
from storefront.payments.gateway.port import GatewayUnavailable, PaymentGateway
from storefront.payments.methods import CardPayment, PaymentMethod, PaymentPayload
from storefront.payments.recording import (
    ClaimAction,
    MarkPaymentUnresolved,
    OpenPayment,
    PaymentClaim,
    RecordPaymentFailure,
    RecordPaymentSource,
    RecordPaymentSuccess,
    RecordPendingCharge,
)

logger = structlog.get_logger(__name__)

RETRY_HINT = "Payment service unavailable, please try again"


class SettlementOutcome(Enum):
    SETTLED = "settled"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    FAILED = "failed"


@dataclass(frozen=True)
class Settlement:
    order_id: str
    method: PaymentMethod
    outcome: SettlementOutcome
    reason: str | None = None
    retryable: bool = False
    charge_id: str | None = None
    source_id: str | None = None
    scannable_image_url: str | None = None
    authorize_uri: str | None = None  # Where the buyer completes 3-D Secure

    def raise_for_status(self) -> "Settlement":
        """Raise ``PaymentDeclined`` for a failure, ``GatewayUnavailable`` for a retryable outage."""
        if self.outcome == SettlementOutcome.FAILED:
            raise PaymentDeclined(self.order_id, self.reason or "Payment failed")
        if self.retryable:
            raise GatewayUnavailable(self.reason or RETRY_HINT)
        return self


def _from_claim(claim: PaymentClaim) -> Settlement | None:
    """Answer without a gateway call when the claim allows it."""
    if claim.action == ClaimAction.ALREADY_SETTLED:
        return Settlement(order_id=claim.order_id, method=claim.method, outcome=SettlementOutcome.SETTLED)
    if claim.action == ClaimAction.ALREADY_FAILED:
        return Settlement(
            order_id=claim.order_id,
            method=claim.method,
            outcome=SettlementOutcome.FAILED,
            reason=claim.reason or "Order has been cancelled",
        )
    if claim.action == ClaimAction.IN_FLIGHT:
        return Settlement(
            order_id=claim.order_id,
            method=claim.method,
            outcome=SettlementOutcome.AWAITING_CONFIRMATION,
            reason="A payment for this order is already in progress",
            retryable=True,
        )
    if claim.action == ClaimAction.AWAITING_CONFIRMATION:
        return Settlement(
            order_id=claim.order_id,
            method=claim.method,
            outcome=SettlementOutcome.AWAITING_CONFIRMATION,
            source_id=claim.source_id,
            scannable_image_url=claim.scannable_image_url,
            authorize_uri=claim.authorize_uri,
        )
    return None


def _charge_card(claim: PaymentClaim, payment: CardPayment, gateway: PaymentGateway) -> Settlement:
    try:
        result = gateway.create_charge(
            amount=claim.amount,
            currency=claim.currency,
            card_token=payment.card_token,
            idempotency_key=claim.idempotency_key,
        )
    except GatewayUnavailable as exc:
        dispatch(MarkPaymentUnresolved(payment_id=claim.payment_id, detail=str(exc)[:500]))
        return Settlement(
            order_id=claim.order_id,
            method=claim.method,
            outcome=SettlementOutcome.AWAITING_CONFIRMATION,
            reason=RETRY_HINT,
            retryable=True,
        )

    if result.success:
        dispatch(RecordPaymentSuccess(payment_id=claim.payment_id, charge_id=result.charge_id))
        return Settlement(
            order_id=claim.order_id,
            method=claim.method,
            outcome=SettlementOutcome.SETTLED,
            charge_id=result.charge_id,
        )

    if result.declined:
        reason = result.failure_reason or "Card declined"
        dispatch(RecordPaymentFailure(payment_id=claim.payment_id, reason=reason, charge_id=result.charge_id))
        return Settlement(
            order_id=claim.order_id,
            method=claim.method,
            outcome=SettlementOutcome.FAILED,
            reason=reason,
            charge_id=result.charge_id,
        )

    # Neither taken nor refused: the gateway reports the outcome by webhook
    if result.charge_id:
        dispatch(
            RecordPendingCharge(
                payment_id=claim.payment_id,
                charge_id=result.charge_id,
                authorize_uri=result.authorize_uri,
            )
        )
    else:
        dispatch(MarkPaymentUnresolved(payment_id=claim.payment_id, detail=f"Charge {result.gateway_status}"))
    return Settlement(
        order_id=claim.order_id,
        method=claim.method,
        outcome=SettlementOutcome.AWAITING_CONFIRMATION,
        charge_id=result.charge_id,
        authorize_uri=result.authorize_uri,
    )


def _create_qr_source(claim: PaymentClaim, gateway: PaymentGateway) -> Settlement:
    try:
        source = gateway.create_source(amount=claim.amount, currency=claim.currency, method=claim.method.value)
    except GatewayUnavailable as exc:
        dispatch(MarkPaymentUnresolved(payment_id=claim.payment_id, detail=str(exc)[:500]))
        return Settlement(
            order_id=claim.order_id,
            method=claim.method,
            outcome=SettlementOutcome.AWAITING_CONFIRMATION,
            reason=RETRY_HINT,
            retryable=True,
        )

    dispatch(
        RecordPaymentSource(
            payment_id=claim.payment_id,
            source_id=source.source_id,
            scannable_image_url=source.scannable_image_url,
        )
    )
    return Settlement(
        order_id=claim.order_id,
        method=claim.method,
        outcome=SettlementOutcome.AWAITING_CONFIRMATION,
        source_id=source.source_id,
        scannable_image_url=source.scannable_image_url,
    )


def settle(order_id, payment: PaymentPayload, amount: int | None = None, gateway: PaymentGateway | None = None):
    """Settle ``order_id`` with ``payment`` and report the outcome.

    ``amount`` (minor units) is optional; when given it must equal the order
    total. Declines and outages are reported in the returned ``Settlement``;
    call ``raise_for_status`` to turn them into exceptions.
    """
    claim = dispatch(OpenPayment(order_id=order_id, method=payment.method.value, amount=amount))

    settlement = _from_claim(claim)
    if settlement is None:
        gateway = gateway or get_gateway()
        if isinstance(payment, CardPayment):
            settlement = _charge_card(claim, payment, gateway)
        else:
            settlement = _create_qr_source(claim, gateway)

    logger.info(
        "Settlement",
        order_id=settlement.order_id,
        method=settlement.method.value,
        outcome=settlement.outcome.value,
        reason=settlement.reason,
        retryable=settlement.retryable,
    )
    return settlement
