"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared
between users except the scarce product of the contention scenario.
"""

from dataclasses import dataclass


@dataclass
class CheckoutState:
    """Tracks one buyer's way from an empty cart to a settled order."""

    buyer_id: str | None = None
    store_id: str | None = None
    product_id: str | None = None
    order_id: str | None = None
    payment_method: str = "cod"
    source_id: str | None = None
    current_status: str = "pending"
