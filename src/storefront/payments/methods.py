"""Payment methods a buyer can choose at checkout.

``PaymentMethod`` is the tag stored on the Order; the payload dataclasses
carry what ``settle`` needs for each method. Card payments carry only a
one-time token obtained by the client from the gateway; raw card numbers
never reach the server.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError


class PaymentMethod(Enum):
    CARD = "card"
    QR = "qr"
    COD = "cod"


@dataclass(frozen=True)
class CardPayment:
    card_token: str

    method = PaymentMethod.CARD

    def __post_init__(self):
        if not self.card_token or not self.card_token.strip():
            raise ValidationError({"card_token": ["Card token is required for card payments"]})


@dataclass(frozen=True)
class QrPayment:
    method = PaymentMethod.QR


@dataclass(frozen=True)
class CashOnDelivery:
    method = PaymentMethod.COD


PaymentPayload = CardPayment | QrPayment | CashOnDelivery


def payload_for(method, card_token=None) -> PaymentPayload:
    """Build the payload for a method name as it arrives over the API."""
    try:
        method = PaymentMethod(method)
    except ValueError as exc:
        raise ValidationError({"payment_method": [f"Unknown payment method: {method}"]}) from exc

    if method is PaymentMethod.CARD:
        return CardPayment(card_token=card_token or "")
    if method is PaymentMethod.QR:
        return QrPayment()
    return CashOnDelivery()
