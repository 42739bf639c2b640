"""Payment webhooks and buyer acknowledgments.

The gateway reports the outcome of asynchronous payments (QR) by webhook.
Only a webhook whose signature the gateway adapter has verified may confirm
an order. Replayed webhooks are harmless: a payment that already reached a
final status ignores further notifications.

The buyer's "I have paid" button is recorded on the payment for support
staff, and nothing more.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.payments.payment import Payment
from storefront.payments.recording import apply_failure, apply_success

logger = structlog.get_logger(__name__)

SUCCESSFUL = "successful"
FAILED_STATUSES = {"failed", "expired"}


@storefront.command(part_of="Payment")
class ProcessPaymentWebhook:
    """Apply a verified gateway notification."""

    status = String(required=True, max_length=50)  # successful, failed, expired, pending
    charge_id = String(max_length=255)
    source_id = String(max_length=255)
    failure_reason = String(max_length=500)


@storefront.command(part_of="Payment")
class AcknowledgeQrPayment:
    order_id = Identifier(required=True)


@storefront.command_handler(part_of=Payment)
class PaymentWebhookHandler:
    @handle(ProcessPaymentWebhook)
    def process_webhook(self, command):
        repo = current_domain.repository_for(Payment)
        payment = None
        if command.source_id:
            payment = repo.by_source(command.source_id)
        if payment is None and command.charge_id:
            payment = repo.by_charge(command.charge_id)
        if payment is None:
            raise ObjectNotFoundError(
                f"No payment for source {command.source_id} or charge {command.charge_id}"
            )

        if payment.is_terminal:
            logger.info("Webhook for settled payment ignored", payment_id=str(payment.id), status=command.status)
            return payment.status

        if command.status == SUCCESSFUL:
            apply_success(payment, charge_id=command.charge_id)
        elif command.status in FAILED_STATUSES:
            reason = command.failure_reason or f"Payment {command.status}"
            apply_failure(payment, reason=reason, charge_id=command.charge_id)
        else:
            logger.info("Webhook status not actionable", payment_id=str(payment.id), status=command.status)

        return payment.status

    @handle(AcknowledgeQrPayment)
    def acknowledge(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.for_order(command.order_id)
        if payment is None:
            raise ObjectNotFoundError(f"No payment for order {command.order_id}")

        payment.acknowledge_by_buyer()
        repo.add(payment)
