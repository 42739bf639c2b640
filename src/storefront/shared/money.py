"""Fixed-point money helpers.

Amounts are persisted as integers in minor units (satang for THB, cents for
USD) so that order totals are exact sums. ``Decimal`` is only used at the
edges: parsing API input and presenting amounts in major units.
"""

import os
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from protean.exceptions import ValidationError

MINOR_UNITS_PER_MAJOR = 100
_CENT = Decimal("0.01")


def default_currency() -> str:
    """Currency used for new orders, configured through ``STORE_CURRENCY``."""
    return os.getenv("STORE_CURRENCY", "THB").upper()


def to_minor_units(amount) -> int:
    """Convert a major-unit amount (``Decimal``, ``str`` or ``int``) to minor units.

    Amounts with more than two decimal places are rejected rather than rounded.
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError({"amount": [f"Invalid amount: {amount!r}"]}) from exc

    if value < 0:
        raise ValidationError({"amount": ["Amount cannot be negative"]})
    if value != value.quantize(_CENT):
        raise ValidationError({"amount": [f"Amount {amount} has more than two decimal places"]})

    return int(value * MINOR_UNITS_PER_MAJOR)


def to_major_units(minor: int) -> Decimal:
    """Present an integer minor-unit amount as a two-decimal ``Decimal``."""
    return (Decimal(minor) / MINOR_UNITS_PER_MAJOR).quantize(_CENT)


def quantize_major(value: Decimal) -> Decimal:
    """Round a major-unit ``Decimal`` to the nearest minor unit, half up."""
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)
