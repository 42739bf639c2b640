"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Payment")
class PaymentOpened:
    """A payment record was opened for an order and a gateway call is about to be made."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    method = String(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    idempotency_key = String(required=True)


@storefront.event(part_of="Payment")
class PaymentAwaitingConfirmation:
    """A scannable source was created; the gateway will report the outcome by webhook."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    source_id = String(required=True)
    scannable_image_url = String()


@storefront.event(part_of="Payment")
class PaymentSucceeded:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Integer(required=True)
    charge_id = String()
    succeeded_at = DateTime(required=True)


@storefront.event(part_of="Payment")
class PaymentFailed:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@storefront.event(part_of="Payment")
class PaymentUnresolved:
    """The gateway did not answer; the charge may or may not have been taken."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    detail = String()


@storefront.event(part_of="Payment")
class QrPaymentAcknowledged:
    """The buyer said they paid. Informational only; the webhook confirms."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    acknowledged_at = DateTime(required=True)


@storefront.event(part_of="Payment")
class PaymentAuthorizationRequired:
    """The card charge waits for the buyer to pass 3-D Secure; the webhook reports the outcome."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    charge_id = String(required=True)
    authorize_uri = String()
