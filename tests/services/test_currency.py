"""
Tests for currency conversion and rounding.

Rates are foreign units per base unit: 1 USD = 3.6725 AED.
"""

from decimal import Decimal

import pytest

from recycle_erp.exceptions import InvalidRateError
from recycle_erp.services.currency import (
    convert,
    money,
    to_base,
    to_decimal,
    to_foreign,
    unit_cost,
)


class TestToBase:

    def test_divides_by_rate(self):
        assert to_base(Decimal("367.25"), Decimal("3.6725")) == Decimal("100.0000")

    def test_rate_one_is_identity(self):
        assert to_base(Decimal("12.3456"), Decimal("1")) == Decimal("12.3456")

    def test_rounds_half_up_to_four_places(self):
        # 1 / 3 = 0.33333...
        assert to_base(Decimal("1"), Decimal("3")) == Decimal("0.3333")
        assert to_base(Decimal("0.00005"), Decimal("1")) == Decimal("0.0001")

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-1.5")])
    def test_non_positive_rate_rejected(self, rate):
        with pytest.raises(InvalidRateError) as exc:
            to_base(Decimal("100"), rate, "freight")
        assert exc.value.rate == rate
        assert "freight" in str(exc.value)


class TestToForeign:

    def test_multiplies_by_rate(self):
        assert to_foreign(Decimal("100"), Decimal("3.6725")) == Decimal("367.2500")

    def test_zero_rate_rejected(self):
        with pytest.raises(InvalidRateError):
            to_foreign(Decimal("100"), Decimal("0"))


class TestConvert:

    def test_goes_through_base(self):
        # 367.25 AED -> 100 USD -> 92 EUR at 0.92
        assert convert(
            Decimal("367.25"), Decimal("3.6725"), Decimal("0.92")
        ) == Decimal("92.0000")


class TestRounding:

    def test_floats_go_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_money_and_unit_cost_precision(self):
        assert money("2.00005") == Decimal("2.0001")
        assert unit_cost("2.0000005") == Decimal("2.000001")
