"""Payment gateway port (abstract interface).

Defines the contract every payment gateway adapter implements, so the
settlement code can run against FakeGateway in development and tests and
against OmiseGateway in production without change.

Amounts are integers in minor units. Adapters never see raw card numbers:
card charges use a one-time token the client obtained from the gateway.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass

# Charge statuses that mean no money moved and none will
DECLINED_STATUSES = frozenset({"failed", "expired"})


class GatewayUnavailable(Exception):
    """The gateway could not be reached or did not answer in time.

    The outcome of the attempted operation is unknown; callers must look it
    up later rather than assume success or failure.
    """


@dataclass(frozen=True)
class ChargeResult:
    """Result of a card charge attempt or lookup."""

    success: bool
    charge_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None
    authorize_uri: str | None = None  # Set while a charge waits for 3-D Secure

    @property
    def declined(self) -> bool:
        return not self.success and self.gateway_status in DECLINED_STATUSES


@dataclass(frozen=True)
class SourceResult:
    """A scannable payment source (QR code) awaiting the buyer's payment."""

    source_id: str
    scannable_image_url: str
    gateway_status: str = "pending"


@dataclass(frozen=True)
class WebhookEvent:
    """A verified gateway notification about a charge or source."""

    status: str  # successful | failed | expired
    charge_id: str | None = None
    source_id: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_charge(self, amount: int, currency: str, card_token: str, idempotency_key: str) -> ChargeResult:
        """Charge a tokenized card. Repeating an idempotency key returns the first result."""
        ...

    @abstractmethod
    def create_source(self, amount: int, currency: str, method: str) -> SourceResult:
        """Create a scannable source for an asynchronous payment method."""
        ...

    @abstractmethod
    def find_charge(self, idempotency_key: str) -> ChargeResult | None:
        """Look up the charge made under ``idempotency_key``, or None if there is none."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, headers: Mapping[str, str]) -> bool:
        """Verify that a webhook payload is authentically from the gateway.

        ``headers`` are the request headers with lower-cased names; each
        gateway reads its own signature headers from them.
        """
        ...

    @abstractmethod
    def parse_webhook(self, payload: str) -> WebhookEvent:
        """Translate a verified webhook body into a ``WebhookEvent``."""
        ...
