"""Tests for fixed-point money helpers."""

from decimal import Decimal

import pytest
from protean.exceptions import ValidationError
from storefront.shared.money import default_currency, quantize_major, to_major_units, to_minor_units


class TestToMinorUnits:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            ("1250.50", 125050),
            (Decimal("0.01"), 1),
            (15, 1500),
            ("0", 0),
            ("19.9", 1990),
        ],
    )
    def test_converts(self, amount, expected):
        assert to_minor_units(amount) == expected

    def test_rejects_negative(self):
        with pytest.raises(ValidationError):
            to_minor_units("-1.00")

    def test_rejects_sub_minor_precision(self):
        with pytest.raises(ValidationError):
            to_minor_units("10.005")

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError):
            to_minor_units("ten baht")

    def test_no_float_drift(self):
        assert sum(to_minor_units("0.10") for _ in range(3)) == to_minor_units("0.30")


class TestPresentation:
    def test_to_major_units(self):
        assert to_major_units(125050) == Decimal("1250.50")

    def test_quantize_half_up(self):
        assert quantize_major(Decimal("2.345")) == Decimal("2.35")


class TestCurrency:
    def test_default_is_thb(self, monkeypatch):
        monkeypatch.delenv("STORE_CURRENCY", raising=False)
        assert default_currency() == "THB"

    def test_configurable(self, monkeypatch):
        monkeypatch.setenv("STORE_CURRENCY", "usd")
        assert default_currency() == "USD"
