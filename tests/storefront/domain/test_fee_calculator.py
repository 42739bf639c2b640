"""Tests for the seller fee calculator."""

from decimal import Decimal

import pytest
from storefront.fees.calculator import FEE_TIERS, fee_rate, line_revenue, net_revenue


class TestFeeRate:
    @pytest.mark.parametrize(
        "unit_price, expected",
        [
            (0, Decimal("0.03")),
            (50000, Decimal("0.03")),  # 500.00
            (99999, Decimal("0.03")),  # 999.99
            (100000, Decimal("0.03")),  # 1000.00
            (150000, Decimal("0.03")),  # 1500.00
            (399999, Decimal("0.03")),  # 3999.99
            (400000, Decimal("0.05")),  # 4000.00
            (1250000, Decimal("0.05")),  # 12500.00
        ],
    )
    def test_rate_by_tier(self, unit_price, expected):
        assert fee_rate(unit_price) == expected

    def test_tiers_are_ordered_from_highest_bound(self):
        bounds = [bound for bound, _ in FEE_TIERS]
        assert bounds == sorted(bounds, reverse=True)


class TestNetRevenue:
    def test_net_is_gross_less_fee(self):
        assert net_revenue(2, 50000) == Decimal("970.00")

    def test_high_tier_line(self):
        assert net_revenue(1, 400000) == Decimal("3800.00")

    def test_rounds_half_up_to_the_minor_unit(self):
        # 0.35 * 0.97 = 0.3395
        assert net_revenue(1, 35) == Decimal("0.34")
        # 0.50 * 0.97 = 0.485
        assert net_revenue(1, 50) == Decimal("0.49")

    def test_zero_price_earns_nothing(self):
        assert net_revenue(3, 0) == Decimal("0.00")

    def test_line_revenue_breakdown_adds_up(self):
        revenue = line_revenue(3, 123456)
        assert revenue.gross == Decimal("3703.68")
        assert revenue.fee + revenue.net == revenue.gross
        assert revenue.rate == Decimal("0.03")
        assert revenue.unit_price == Decimal("1234.56")


class TestMixedCart:
    def test_two_lines_in_the_lower_tiers(self):
        line_a = line_revenue(2, 50000)
        line_b = line_revenue(1, 150000)

        assert line_a.rate == Decimal("0.03")
        assert line_b.rate == Decimal("0.03")
        assert line_a.gross + line_b.gross == Decimal("2500.00")
        assert line_a.net == Decimal("970.00")
        assert line_b.net == Decimal("1455.00")
        assert line_a.net + line_b.net == Decimal("2425.00")
