"""
Landed cost allocation.

Turns a purchase's material cost plus its freight, clearing and
commission charges (each in its own currency) into a base-currency
landed cost per kg, for the purchase as a whole and for each original
type inside it.

Untagged additional costs are spread over the lines pro rata by
weight; a cost tagged to a line lands on that line only. The last line
absorbs the rounding residual so the line totals always add up to the
purchase total.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from recycle_erp.exceptions import DivisionByZeroError
from recycle_erp.services.currency import MONEY, ZERO, money, to_base, unit_cost


@dataclass(frozen=True)
class LineInput:
    weight_kg: Decimal
    material_cost: Decimal  # base currency


@dataclass(frozen=True)
class CostInput:
    amount: Decimal  # in the cost's own currency
    exchange_rate: Decimal
    line_index: int | None = None


@dataclass
class LineAllocation:
    weight_kg: Decimal
    material_cost: Decimal
    allocated_cost: Decimal
    landed_cost: Decimal
    landed_cost_per_kg: Decimal


@dataclass
class LandedCost:
    weight_purchased: Decimal
    material_cost: Decimal
    additional_costs: list[Decimal]
    total_additional_cost: Decimal
    total_landed_cost: Decimal
    landed_cost_per_kg: Decimal
    lines: list[LineAllocation] = field(default_factory=list)


def landed_cost_per_kg(material_cost, additional_costs_base, weight) -> Decimal:
    """(material + sum(additional)) / weight, all base currency."""
    weight = Decimal(weight)
    if weight == 0:
        raise DivisionByZeroError("landed cost per kg of a zero-weight purchase")
    total = money(Decimal(material_cost) + sum(additional_costs_base, ZERO))
    return unit_cost(total / weight)


def _spread_by_weight(amount: Decimal, weights: list[Decimal]) -> list[Decimal]:
    total_weight = sum(weights, ZERO)
    shares = []
    allocated = ZERO
    for i, weight in enumerate(weights):
        if i == len(weights) - 1:
            shares.append(amount - allocated)
        else:
            share = (amount * weight / total_weight).quantize(
                MONEY, rounding=ROUND_HALF_UP
            )
            allocated += share
            shares.append(share)
    return shares


def allocate_landed_cost(
    lines: list[LineInput], costs: list[CostInput]
) -> LandedCost:
    """
    Allocate additional costs across purchase lines.

    Raises DivisionByZeroError when the purchase weighs nothing and
    InvalidRateError when any cost carries a non-positive rate.
    """
    weights = [Decimal(line.weight_kg) for line in lines]
    total_weight = sum(weights, ZERO)
    if total_weight == 0:
        raise DivisionByZeroError("landed cost per kg of a zero-weight purchase")

    costs_base = [
        to_base(cost.amount, cost.exchange_rate, f"additional cost #{i + 1}")
        for i, cost in enumerate(costs)
    ]

    material_cost = money(sum((line.material_cost for line in lines), ZERO))
    pool = sum(
        (base for base, cost in zip(costs_base, costs) if cost.line_index is None),
        ZERO,
    )
    allocated = _spread_by_weight(pool, weights)
    for base, cost in zip(costs_base, costs):
        if cost.line_index is not None:
            allocated[cost.line_index] += base

    allocations = []
    for line, weight, extra in zip(lines, weights, allocated):
        landed = money(line.material_cost + extra)
        allocations.append(LineAllocation(
            weight_kg=weight,
            material_cost=money(line.material_cost),
            allocated_cost=money(extra),
            landed_cost=landed,
            landed_cost_per_kg=unit_cost(landed / weight) if weight else ZERO,
        ))

    total_additional = money(sum(costs_base, ZERO))
    return LandedCost(
        weight_purchased=total_weight,
        material_cost=material_cost,
        additional_costs=costs_base,
        total_additional_cost=total_additional,
        total_landed_cost=money(material_cost + total_additional),
        landed_cost_per_kg=landed_cost_per_kg(
            material_cost, costs_base, total_weight
        ),
        lines=allocations,
    )
