"""Omise payment gateway adapter.

Talks to the Omise REST API over HTTPS with ``httpx``:

- card charges: ``POST /charges`` with the client-side card token and an
  ``Idempotency-Key`` header, so a retried charge is never taken twice.
  A card enrolled in 3-D Secure answers ``pending`` with an ``authorize_uri``
  and completes later by webhook,
- PromptPay QR: ``POST /charges`` with an inline ``promptpay`` source; the
  response carries the scannable image,
- lookups: ``GET /search`` over charges, matched on the idempotency key
  stored in the charge metadata,
- webhooks: HMAC-SHA256 over ``"{Omise-Signature-Timestamp}.{body}"`` with
  the base64-decoded webhook secret, sent in the ``Omise-Signature`` header.

Timeouts, connection errors, 5xx answers and error objects that say nothing
about the card (bad keys, account problems) raise ``GatewayUnavailable``;
the buyer is asked to retry and the detail stays in the logs.
"""

import base64
import hashlib
import hmac
import json
import time
from collections.abc import Mapping

import httpx
import structlog

from storefront.payments.gateway.port import (
    ChargeResult,
    GatewayUnavailable,
    PaymentGateway,
    SourceResult,
    WebhookEvent,
)

logger = structlog.get_logger(__name__)

API_URL = "https://api.omise.co"

SIGNATURE_HEADER = "omise-signature"
TIMESTAMP_HEADER = "omise-signature-timestamp"
WEBHOOK_TOLERANCE_SECONDS = 300

# Omise source types for the asynchronous methods offered at checkout
_SOURCE_TYPES = {"qr": "promptpay"}

# Error codes that reject the card itself rather than the request
_CARD_ERROR_CODES = frozenset({"invalid_card", "used_token"})


class OmiseGateway(PaymentGateway):
    """Production gateway adapter for Omise."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        timeout: float = 10.0,
        base_url: str = API_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.webhook_secret = webhook_secret
        self._client = httpx.Client(
            base_url=base_url,
            auth=(secret_key, ""),
            timeout=timeout,
            transport=transport,
        )

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, path, **kwargs)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            logger.warning("Omise request failed", path=path, error=str(exc))
            raise GatewayUnavailable(f"Omise did not answer {method} {path}") from exc

        if response.status_code >= 500:
            logger.warning("Omise server error", path=path, status_code=response.status_code)
            raise GatewayUnavailable(f"Omise answered {response.status_code} to {method} {path}")

        return response.json()

    @staticmethod
    def _raise_for_error(data: dict, action: str) -> None:
        if data.get("object") != "error":
            return
        logger.error("Omise refused request", action=action, code=data.get("code"), message=data.get("message"))
        raise GatewayUnavailable(f"Omise refused to {action} ({data.get('code')})")

    @staticmethod
    def _charge_result(data: dict) -> ChargeResult:
        status = data.get("status")
        return ChargeResult(
            success=status == "successful",
            charge_id=data.get("id"),
            gateway_status=status,
            failure_reason=data.get("failure_message"),
            authorize_uri=data.get("authorize_uri") if status == "pending" else None,
        )

    def create_charge(self, amount: int, currency: str, card_token: str, idempotency_key: str) -> ChargeResult:
        data = self._request(
            "POST",
            "/charges",
            data={
                "amount": amount,
                "currency": currency.lower(),
                "card": card_token,
                "metadata[idempotency_key]": idempotency_key,
            },
            headers={"Idempotency-Key": idempotency_key},
        )
        if data.get("object") == "error" and data.get("code") in _CARD_ERROR_CODES:
            return ChargeResult(success=False, gateway_status="failed", failure_reason=data.get("message"))
        self._raise_for_error(data, "charge the card")
        return self._charge_result(data)

    def create_source(self, amount: int, currency: str, method: str) -> SourceResult:
        source_type = _SOURCE_TYPES.get(method, method)
        data = self._request(
            "POST",
            "/charges",
            data={
                "amount": amount,
                "currency": currency.lower(),
                "source[type]": source_type,
            },
        )
        self._raise_for_error(data, f"create a {source_type} source")

        source = data.get("source") or {}
        image = (source.get("scannable_code") or {}).get("image") or {}
        return SourceResult(
            source_id=source.get("id"),
            scannable_image_url=image.get("download_uri"),
            gateway_status=data.get("status", "pending"),
        )

    def find_charge(self, idempotency_key: str) -> ChargeResult | None:
        data = self._request("GET", "/search", params={"scope": "charge", "query": idempotency_key})
        self._raise_for_error(data, "search charges")
        for charge in data.get("data", []):
            if (charge.get("metadata") or {}).get("idempotency_key") == idempotency_key:
                return self._charge_result(charge)
        return None

    def verify_webhook_signature(self, payload: str, headers: Mapping[str, str]) -> bool:
        signature = headers.get(SIGNATURE_HEADER, "")
        timestamp = headers.get(TIMESTAMP_HEADER, "")
        if not signature or not timestamp.isdigit():
            return False
        if abs(time.time() - int(timestamp)) > WEBHOOK_TOLERANCE_SECONDS:
            logger.warning("Stale webhook rejected", timestamp=timestamp)
            return False

        secret = base64.b64decode(self.webhook_secret)
        expected = hmac.new(secret, f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
        # Omise sends several comma separated signatures while a secret is being rotated
        return any(hmac.compare_digest(expected, candidate.strip()) for candidate in signature.split(","))

    def parse_webhook(self, payload: str) -> WebhookEvent:
        event = json.loads(payload)
        charge = event.get("data") or {}
        source = charge.get("source") or {}
        return WebhookEvent(
            status=charge.get("status"),
            charge_id=charge.get("id"),
            source_id=source.get("id"),
            failure_reason=charge.get("failure_message"),
        )
