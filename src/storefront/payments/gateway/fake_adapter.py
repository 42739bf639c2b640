"""Configurable fake payment gateway for development and testing.

Simulates a gateway without any external calls. It can be told at runtime
to approve or decline charges, or to behave as if it were unreachable,
through ``/payments/gateway/configure`` or directly from tests. With
``requires_authorization`` set, card charges stay pending behind a 3-D Secure
page, as a real gateway answers for cards enrolled in it. Charges are
remembered by idempotency key, so retrying a charge returns the original
result just as the real gateway does.
"""

import json
from collections.abc import Mapping
from uuid import uuid4

from storefront.payments.gateway.port import (
    ChargeResult,
    GatewayUnavailable,
    PaymentGateway,
    SourceResult,
    WebhookEvent,
)

AUTHORIZE_URL = "https://fake-gateway.invalid/authorize/{charge_id}"
SIGNATURE_HEADER = "x-gateway-signature"
QR_IMAGE_URL = "https://api.qrserver.com/v1/create-qr-code/?size=300x300&data=Payment-Mockup-{amount}-{currency}"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.available: bool = True
        self.requires_authorization: bool = False
        self.charges: dict[str, ChargeResult] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Card declined",
        available: bool = True,
        requires_authorization: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.available = available
        self.requires_authorization = requires_authorization

    def _check_available(self):
        if not self.available:
            raise GatewayUnavailable("Fake gateway is configured as unavailable")

    def create_charge(self, amount: int, currency: str, card_token: str, idempotency_key: str) -> ChargeResult:
        self.calls.append(
            {
                "method": "create_charge",
                "amount": amount,
                "currency": currency,
                "card_token": card_token,
                "idempotency_key": idempotency_key,
            }
        )
        self._check_available()

        if idempotency_key in self.charges:
            return self.charges[idempotency_key]

        charge_id = f"fake_chrg_{uuid4().hex[:12]}"
        if self.requires_authorization:
            result = ChargeResult(
                success=False,
                charge_id=charge_id,
                gateway_status="pending",
                authorize_uri=AUTHORIZE_URL.format(charge_id=charge_id),
            )
        elif self.should_succeed:
            result = ChargeResult(success=True, charge_id=charge_id, gateway_status="successful")
        else:
            result = ChargeResult(
                success=False,
                charge_id=charge_id,
                gateway_status="failed",
                failure_reason=self.failure_reason,
            )
        self.charges[idempotency_key] = result
        return result

    def create_source(self, amount: int, currency: str, method: str) -> SourceResult:
        self.calls.append({"method": "create_source", "amount": amount, "currency": currency, "type": method})
        self._check_available()

        return SourceResult(
            source_id=f"fake_src_{uuid4().hex[:12]}",
            scannable_image_url=QR_IMAGE_URL.format(amount=amount, currency=currency),
        )

    def find_charge(self, idempotency_key: str) -> ChargeResult | None:
        self.calls.append({"method": "find_charge", "idempotency_key": idempotency_key})
        self._check_available()
        return self.charges.get(idempotency_key)

    def record_charge(self, idempotency_key: str, result: ChargeResult) -> None:
        """Pretend a charge reached the gateway even though its answer was lost."""
        self.charges[idempotency_key] = result

    def verify_webhook_signature(self, payload: str, headers: Mapping[str, str]) -> bool:  # noqa: ARG002
        return headers.get(SIGNATURE_HEADER) == "test-signature"

    def parse_webhook(self, payload: str) -> WebhookEvent:
        """The fake gateway posts ``{status, charge_id, source_id, failure_reason}``."""
        data = json.loads(payload)
        return WebhookEvent(
            status=data["status"],
            charge_id=data.get("charge_id"),
            source_id=data.get("source_id"),
            failure_reason=data.get("failure_reason"),
        )
