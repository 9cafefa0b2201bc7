"""Tests for landed cost allocation."""

from decimal import Decimal

import pytest

from recycle_erp.exceptions import DivisionByZeroError, InvalidRateError
from recycle_erp.services.landed_cost import (
    CostInput,
    LineInput,
    allocate_landed_cost,
    landed_cost_per_kg,
)


def test_per_kg_includes_additional_costs():
    per_kg = landed_cost_per_kg(
        Decimal("1000"), [Decimal("150"), Decimal("50")], Decimal("800")
    )
    assert per_kg == Decimal("1.500000")


def test_zero_weight_rejected():
    with pytest.raises(DivisionByZeroError):
        landed_cost_per_kg(Decimal("1000"), [], Decimal("0"))


def test_allocation_sums_to_material_plus_costs():
    result = allocate_landed_cost(
        [
            LineInput(weight_kg=Decimal("12500"), material_cost=Decimal("5000")),
            LineInput(weight_kg=Decimal("7300"), material_cost=Decimal("2190")),
            LineInput(weight_kg=Decimal("3"), material_cost=Decimal("1")),
        ],
        [
            # 3,672.50 AED freight at 3.6725 -> 1,000 USD
            CostInput(amount=Decimal("3672.50"), exchange_rate=Decimal("3.6725")),
            CostInput(amount=Decimal("333.33"), exchange_rate=Decimal("1")),
        ],
    )

    expected_total = Decimal("7191") + Decimal("1000") + Decimal("333.33")
    assert result.total_landed_cost == expected_total
    assert sum(l.landed_cost for l in result.lines) == expected_total
    assert sum(l.allocated_cost for l in result.lines) == result.total_additional_cost
    # per-kg * weight is within rounding of the total
    assert abs(
        result.landed_cost_per_kg * result.weight_purchased - expected_total
    ) < Decimal("0.05")


def test_spread_is_pro_rata_by_weight():
    result = allocate_landed_cost(
        [
            LineInput(weight_kg=Decimal("300"), material_cost=Decimal("300")),
            LineInput(weight_kg=Decimal("100"), material_cost=Decimal("100")),
        ],
        [CostInput(amount=Decimal("40"), exchange_rate=Decimal("1"))],
    )
    assert [l.allocated_cost for l in result.lines] == [Decimal("30.0000"), Decimal("10.0000")]
    assert result.landed_cost_per_kg == Decimal("1.100000")


def test_tagged_cost_lands_on_one_line():
    result = allocate_landed_cost(
        [
            LineInput(weight_kg=Decimal("100"), material_cost=Decimal("100")),
            LineInput(weight_kg=Decimal("100"), material_cost=Decimal("100")),
        ],
        [CostInput(amount=Decimal("25"), exchange_rate=Decimal("1"), line_index=1)],
    )
    assert result.lines[0].allocated_cost == Decimal("0")
    assert result.lines[1].allocated_cost == Decimal("25.0000")
    assert result.lines[1].landed_cost_per_kg == Decimal("1.250000")


def test_bad_cost_rate_rejected():
    with pytest.raises(InvalidRateError):
        allocate_landed_cost(
            [LineInput(weight_kg=Decimal("10"), material_cost=Decimal("10"))],
            [CostInput(amount=Decimal("5"), exchange_rate=Decimal("0"))],
        )


def test_allocator_rejects_weightless_purchase():
    with pytest.raises(DivisionByZeroError):
        allocate_landed_cost(
            [LineInput(weight_kg=Decimal("0"), material_cost=Decimal("10"))],
            [],
        )
