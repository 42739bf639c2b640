"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (``PAYMENT_GATEWAY=fake``, default)
- OmiseGateway for production (``PAYMENT_GATEWAY=omise``)
"""

import os

from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _gateway_from_environment() -> PaymentGateway:
    adapter = os.getenv("PAYMENT_GATEWAY", "fake").lower()
    if adapter == "omise":
        from storefront.payments.gateway.omise_adapter import OmiseGateway

        return OmiseGateway(
            secret_key=os.environ["OMISE_SECRET_KEY"],
            webhook_secret=os.environ["OMISE_WEBHOOK_SECRET"],
            timeout=float(os.getenv("PAYMENT_GATEWAY_TIMEOUT", "10")),
        )
    return FakeGateway()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _gateway_from_environment()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
