"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names of the storefront API's Pydantic request
schemas. Money is sent as decimal strings in major units.
"""

import random
import uuid

from faker import Faker

fake = Faker("th_TH")

STORE_IDS = [f"store-{n:03d}" for n in range(1, 11)]


def buyer_id() -> str:
    return f"buyer-lt-{uuid.uuid4().hex[:8]}"


def store_id() -> str:
    return random.choice(STORE_IDS)


def unit_price() -> str:
    """Prices spread across every fee tier: under 1000, 1000 to 3999, 4000 and up."""
    major = random.choice(
        [
            random.randint(50, 999),
            random.randint(1000, 3999),
            random.randint(4000, 25000),
        ]
    )
    return f"{major}.{random.randint(0, 99):02d}"


def product_data(store: str | None = None, stock: int | None = None) -> dict:
    """Generate a ListProductRequest payload."""
    return {
        "store_id": store or store_id(),
        "name": f"{fake.word().capitalize()} {random.choice(['bowl', 'scarf', 'lamp', 'basket', 'mug'])}"[:200],
        "unit_price": unit_price(),
        "stock": stock if stock is not None else random.randint(20, 200),
    }


def checkout_data(buyer: str, payment_method: str) -> dict:
    """Generate a PlaceOrderRequest payload."""
    return {
        "buyer_id": buyer,
        "shipping_address": fake.address().replace("\n", " ")[:500],
        "phone": f"08{random.randint(10000000, 99999999)}",
        "payment_method": payment_method,
    }


def card_settlement(decline: bool = False) -> dict:
    """Generate a SettleRequest payload for a card. The fake gateway ignores the token value."""
    token = "tokn_test_declined" if decline else f"tokn_test_{uuid.uuid4().hex[:12]}"
    return {"payment_method": "card", "card_token": token}


def webhook_success(source_id: str) -> dict:
    return {"status": "successful", "source_id": source_id, "charge_id": f"chrg_lt_{uuid.uuid4().hex[:10]}"}
