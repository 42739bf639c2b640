"""Application tests for payment settlement across card, QR and cash on delivery."""

import httpx
import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.catalogue.product import Product
from storefront.dispatch import dispatch
from storefront.errors import PaymentDeclined
from storefront.order import fulfillment
from storefront.order.order import Order, OrderStatus
from storefront.payments.gateway.omise_adapter import OmiseGateway
from storefront.payments.gateway.port import ChargeResult, GatewayUnavailable
from storefront.payments.methods import CardPayment, CashOnDelivery, QrPayment
from storefront.payments.payment import Payment, PaymentStatus
from storefront.payments.settlement import RETRY_HINT, SettlementOutcome, settle
from storefront.payments.webhook import ProcessPaymentWebhook

CARD = CardPayment(card_token="tokn_test_visa")


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _payment(order_id):
    return current_domain.repository_for(Payment).for_order(order_id)


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


def _charges(gateway):
    return [call for call in gateway.calls if call["method"] == "create_charge"]


class TestCardApproved:
    def test_confirms_order(self, checkout, gateway):
        order_id, _ = checkout(payment_method="card")

        settlement = settle(order_id, CARD)

        assert settlement.outcome == SettlementOutcome.SETTLED
        assert settlement.charge_id
        assert _order(order_id).status == OrderStatus.CONFIRMED.value

    def test_records_charge_on_payment(self, checkout, gateway):
        order_id, _ = checkout(payment_method="card", quantity=2, unit_price=125050)

        settlement = settle(order_id, CARD)

        payment = _payment(order_id)
        assert payment.status == PaymentStatus.SUCCEEDED.value
        assert payment.charge_id == settlement.charge_id
        assert payment.amount == 250100

    def test_charges_order_total_with_order_id_as_idempotency_key(self, checkout, gateway):
        order_id, _ = checkout(payment_method="card", quantity=2, unit_price=50000)

        settle(order_id, CARD)

        (charge,) = _charges(gateway)
        assert charge["amount"] == 100000
        assert charge["currency"] == "THB"
        assert charge["card_token"] == "tokn_test_visa"
        assert charge["idempotency_key"] == order_id

    def test_matching_amount_is_accepted(self, checkout):
        order_id, _ = checkout(payment_method="card", unit_price=50000)
        assert settle(order_id, CARD, amount=50000).outcome == SettlementOutcome.SETTLED

    def test_raise_for_status_passes(self, checkout):
        order_id, _ = checkout(payment_method="card")
        assert settle(order_id, CARD).raise_for_status().outcome == SettlementOutcome.SETTLED


class TestCardDeclined:
    def test_cancels_order_and_restores_stock(self, checkout, gateway):
        gateway.configure(should_succeed=False, failure_reason="Insufficient funds")
        order_id, product_id = checkout(payment_method="card", quantity=2, stock=5)
        assert _stock(product_id) == 3

        settlement = settle(order_id, CARD)

        assert settlement.outcome == SettlementOutcome.FAILED
        assert settlement.reason == "Insufficient funds"
        assert _order(order_id).status == OrderStatus.CANCELLED.value
        assert _stock(product_id) == 5
        assert _payment(order_id).status == PaymentStatus.FAILED.value

    def test_raise_for_status_surfaces_reason(self, checkout, gateway):
        gateway.configure(should_succeed=False, failure_reason="Card expired")
        order_id, _ = checkout(payment_method="card")

        with pytest.raises(PaymentDeclined) as exc:
            settle(order_id, CARD).raise_for_status()

        assert exc.value.reason == "Card expired"
        assert exc.value.order_id == order_id

    def test_cancellation_reason_mentions_payment(self, checkout, gateway):
        gateway.configure(should_succeed=False, failure_reason="Stolen card")
        order_id, _ = checkout(payment_method="card")

        settle(order_id, CARD)

        assert _order(order_id).cancellation_reason == "Payment failed: Stolen card"

    def test_settling_again_does_not_charge(self, checkout, gateway):
        gateway.configure(should_succeed=False)
        order_id, product_id = checkout(payment_method="card", stock=5)
        settle(order_id, CARD)

        gateway.configure(should_succeed=True)
        settlement = settle(order_id, CARD)

        assert settlement.outcome == SettlementOutcome.FAILED
        assert len(_charges(gateway)) == 1
        assert _stock(product_id) == 5


class TestIdempotentSettlement:
    def test_second_settle_on_confirmed_order_does_not_charge(self, checkout, gateway):
        order_id, _ = checkout(payment_method="card")

        first = settle(order_id, CARD)
        second = settle(order_id, CARD)

        assert first.outcome == SettlementOutcome.SETTLED
        assert second.outcome == SettlementOutcome.SETTLED
        assert second.reason is None
        assert len(_charges(gateway)) == 1
        assert _order(order_id).status == OrderStatus.CONFIRMED.value

    def test_settle_on_shipped_order_is_settled(self, checkout, gateway):
        order_id, _ = checkout(payment_method="card")
        settle(order_id, CARD)
        fulfillment.ship(order_id, "store-001")
        gateway.calls.clear()

        assert settle(order_id, CARD).outcome == SettlementOutcome.SETTLED
        assert gateway.calls == []

    def test_settle_on_cancelled_order_fails_without_gateway(self, checkout, gateway):
        order_id, _ = checkout(payment_method="card")
        fulfillment.cancel(order_id, "store-001", "Out of stock in warehouse")

        settlement = settle(order_id, CARD)

        assert settlement.outcome == SettlementOutcome.FAILED
        assert settlement.reason == "Out of stock in warehouse"
        assert gateway.calls == []


class TestGatewayOutage:
    def test_order_stays_pending_and_payment_unresolved(self, checkout, gateway):
        gateway.configure(should_succeed=True, available=False)
        order_id, product_id = checkout(payment_method="card", stock=5)

        settlement = settle(order_id, CARD)

        assert settlement.outcome == SettlementOutcome.AWAITING_CONFIRMATION
        assert settlement.retryable
        assert _order(order_id).status == OrderStatus.PENDING.value
        assert _payment(order_id).status == PaymentStatus.UNRESOLVED.value
        assert _stock(product_id) == 4

    def test_raise_for_status_is_gateway_unavailable(self, checkout, gateway):
        gateway.configure(should_succeed=True, available=False)
        order_id, _ = checkout(payment_method="card")

        with pytest.raises(GatewayUnavailable):
            settle(order_id, CARD).raise_for_status()

    def test_retry_after_outage_settles_with_same_key(self, checkout, gateway):
        gateway.configure(should_succeed=True, available=False)
        order_id, _ = checkout(payment_method="card")
        settle(order_id, CARD)

        gateway.configure(should_succeed=True, available=True)
        settlement = settle(order_id, CARD)

        assert settlement.outcome == SettlementOutcome.SETTLED
        assert {charge["idempotency_key"] for charge in _charges(gateway)} == {order_id}
        assert len(gateway.charges) == 1
        assert _order(order_id).status == OrderStatus.CONFIRMED.value

    def test_retry_after_lost_answer_does_not_charge_twice(self, checkout, gateway):
        gateway.configure(should_succeed=True, available=False)
        order_id, _ = checkout(payment_method="card")
        settle(order_id, CARD)
        # The first charge went through but its answer never arrived
        gateway.record_charge(order_id, ChargeResult(success=True, charge_id="chrg_lost", gateway_status="successful"))

        gateway.configure(should_succeed=True, available=True)
        settlement = settle(order_id, CARD)

        assert settlement.charge_id == "chrg_lost"
        assert _payment(order_id).charge_id == "chrg_lost"


class TestCardHeldForAuthorization:
    def test_order_stays_pending_with_stock_reserved(self, checkout, gateway):
        gateway.configure(should_succeed=True, requires_authorization=True)
        order_id, product_id = checkout(payment_method="card", stock=5)

        settlement = settle(order_id, CARD)

        assert settlement.outcome == SettlementOutcome.AWAITING_CONFIRMATION
        assert not settlement.retryable
        assert settlement.authorize_uri
        assert _order(order_id).status == OrderStatus.PENDING.value
        assert _stock(product_id) == 4

    def test_payment_keeps_charge_for_the_webhook(self, checkout, gateway):
        gateway.configure(should_succeed=True, requires_authorization=True)
        order_id, _ = checkout(payment_method="card")

        settlement = settle(order_id, CARD)

        payment = _payment(order_id)
        assert payment.status == PaymentStatus.AWAITING_CONFIRMATION.value
        assert payment.charge_id == settlement.charge_id
        assert payment.authorize_uri == settlement.authorize_uri

    def test_settling_again_returns_the_same_authorization(self, checkout, gateway):
        gateway.configure(should_succeed=True, requires_authorization=True)
        order_id, _ = checkout(payment_method="card")
        first = settle(order_id, CARD)

        second = settle(order_id, CARD)

        assert second.outcome == SettlementOutcome.AWAITING_CONFIRMATION
        assert second.authorize_uri == first.authorize_uri
        assert len(_charges(gateway)) == 1

    def test_successful_webhook_confirms(self, checkout, gateway):
        gateway.configure(should_succeed=True, requires_authorization=True)
        order_id, _ = checkout(payment_method="card")
        settlement = settle(order_id, CARD)

        dispatch(ProcessPaymentWebhook(status="successful", charge_id=settlement.charge_id))

        assert _order(order_id).status == OrderStatus.CONFIRMED.value
        assert _payment(order_id).status == PaymentStatus.SUCCEEDED.value

    def test_failed_webhook_cancels_and_restores_stock(self, checkout, gateway):
        gateway.configure(should_succeed=True, requires_authorization=True)
        order_id, product_id = checkout(payment_method="card", stock=5)
        settlement = settle(order_id, CARD)

        dispatch(
            ProcessPaymentWebhook(
                status="failed",
                charge_id=settlement.charge_id,
                failure_reason="failed 3-D Secure",
            )
        )

        assert _order(order_id).status == OrderStatus.CANCELLED.value
        assert _stock(product_id) == 5


def _omise_answering(status_code, body):
    return OmiseGateway(
        secret_key="skey_test_123",
        webhook_secret="c2VjcmV0",
        transport=httpx.MockTransport(lambda request: httpx.Response(status_code, json=body)),
    )


class TestOmiseCardAnswers:
    def test_pending_charge_leaves_order_pending(self, checkout):
        order_id, product_id = checkout(payment_method="card", stock=5)
        omise = _omise_answering(
            200,
            {
                "object": "charge",
                "id": "chrg_1",
                "status": "pending",
                "authorize_uri": "https://api.omise.co/payments/paym_1/authorize",
            },
        )

        settlement = settle(order_id, CARD, gateway=omise)

        assert settlement.outcome == SettlementOutcome.AWAITING_CONFIRMATION
        assert settlement.authorize_uri == "https://api.omise.co/payments/paym_1/authorize"
        assert _order(order_id).status == OrderStatus.PENDING.value
        assert _payment(order_id).charge_id == "chrg_1"
        assert _stock(product_id) == 4

    def test_failed_charge_is_declined(self, checkout):
        order_id, _ = checkout(payment_method="card")
        omise = _omise_answering(
            200, {"object": "charge", "id": "chrg_2", "status": "failed", "failure_message": "insufficient fund"}
        )

        settlement = settle(order_id, CARD, gateway=omise)

        assert settlement.outcome == SettlementOutcome.FAILED
        assert settlement.reason == "insufficient fund"
        assert _order(order_id).status == OrderStatus.CANCELLED.value

    def test_authentication_error_is_retryable_and_hides_detail(self, checkout):
        order_id, product_id = checkout(payment_method="card", stock=5)
        omise = _omise_answering(
            401, {"object": "error", "code": "authentication_failure", "message": "authentication failed"}
        )

        settlement = settle(order_id, CARD, gateway=omise)

        assert settlement.outcome == SettlementOutcome.AWAITING_CONFIRMATION
        assert settlement.retryable
        assert settlement.reason == RETRY_HINT
        assert _order(order_id).status == OrderStatus.PENDING.value
        assert _payment(order_id).status == PaymentStatus.UNRESOLVED.value
        assert _stock(product_id) == 4


class TestQr:
    def test_creates_scannable_source_and_waits(self, checkout, gateway):
        order_id, _ = checkout(payment_method="qr", unit_price=125000)

        settlement = settle(order_id, QrPayment())

        assert settlement.outcome == SettlementOutcome.AWAITING_CONFIRMATION
        assert not settlement.retryable
        assert settlement.source_id
        assert "125000" in settlement.scannable_image_url
        assert _order(order_id).status == OrderStatus.PENDING.value

        payment = _payment(order_id)
        assert payment.status == PaymentStatus.AWAITING_CONFIRMATION.value
        assert payment.source_id == settlement.source_id

    def test_settling_again_returns_the_same_source(self, checkout, gateway):
        order_id, _ = checkout(payment_method="qr")

        first = settle(order_id, QrPayment())
        second = settle(order_id, QrPayment())

        assert second.source_id == first.source_id
        assert len([call for call in gateway.calls if call["method"] == "create_source"]) == 1


class TestCashOnDelivery:
    def test_awaits_seller_without_gateway(self, checkout, gateway):
        order_id, _ = checkout(payment_method="cod")

        settlement = settle(order_id, CashOnDelivery())

        assert settlement.outcome == SettlementOutcome.AWAITING_CONFIRMATION
        assert gateway.calls == []
        assert _payment(order_id) is None
        assert _order(order_id).status == OrderStatus.PENDING.value


class TestSettlementValidation:
    def test_amount_must_match_order_total(self, checkout, gateway):
        order_id, _ = checkout(payment_method="card", unit_price=50000)

        with pytest.raises(ValidationError):
            settle(order_id, CARD, amount=49999)

        assert gateway.calls == []

    def test_method_must_match_order(self, checkout, gateway):
        order_id, _ = checkout(payment_method="cod")

        with pytest.raises(ValidationError):
            settle(order_id, CARD)

        assert gateway.calls == []

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            settle("no-such-order", CARD)
