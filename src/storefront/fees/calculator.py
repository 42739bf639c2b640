"""Seller fee calculator.

The platform keeps a commission on every order line, picked by the line's
unit price. Tiers are expressed in major currency units:

    unit_price <  1000        -> 3%
    1000 <= unit_price < 4000 -> 3%
    unit_price >= 4000        -> 5%

The middle tier charges the same rate as the lowest one. That is the policy
as observed in production; it is kept as data in ``FEE_TIERS`` until the
product owners confirm the intended rate.
"""

from dataclasses import dataclass
from decimal import Decimal

from storefront.shared.money import MINOR_UNITS_PER_MAJOR, quantize_major, to_major_units

# (lower bound in major units, rate); ordered from the highest bound down
FEE_TIERS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("4000"), Decimal("0.05")),
    (Decimal("1000"), Decimal("0.03")),
    (Decimal("0"), Decimal("0.03")),
)


@dataclass(frozen=True)
class LineRevenue:
    """Gross, fee and net for one order line, all in major units."""

    quantity: int
    unit_price: Decimal
    rate: Decimal
    gross: Decimal
    fee: Decimal
    net: Decimal


def fee_rate(unit_price_minor: int) -> Decimal:
    """Commission rate for a unit price given in minor units."""
    price = Decimal(unit_price_minor) / MINOR_UNITS_PER_MAJOR
    for lower_bound, rate in FEE_TIERS:
        if price >= lower_bound:
            return rate
    return FEE_TIERS[-1][1]


def line_revenue(quantity: int, unit_price_minor: int) -> LineRevenue:
    """Split a line into gross, platform fee and seller net."""
    rate = fee_rate(unit_price_minor)
    gross = to_major_units(quantity * unit_price_minor)
    net = quantize_major(gross * (Decimal(1) - rate))
    return LineRevenue(
        quantity=quantity,
        unit_price=to_major_units(unit_price_minor),
        rate=rate,
        gross=gross,
        fee=gross - net,
        net=net,
    )


def net_revenue(quantity: int, unit_price_minor: int) -> Decimal:
    """``quantity × unit_price × (1 − rate)`` in major units."""
    return line_revenue(quantity, unit_price_minor).net
