"""
Currency conversion and fixed-point rounding.

Rates are quoted as foreign units per one base unit: with USD as base
and a rate of 3.6725 for AED, 1 USD = 3.6725 AED. Conversions are pure
functions over Decimal; nothing here touches the database.
"""

from decimal import Decimal, ROUND_HALF_UP

from recycle_erp.exceptions import InvalidRateError

# Money, quantities: 4 places. Unit costs and rates: 6 places.
MONEY = Decimal("0.0001")
COST = Decimal("0.000001")
QTY = Decimal("0.0001")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Coerce ints, strings and Decimals; floats go through str()."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def money(value) -> Decimal:
    return to_decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)


def unit_cost(value) -> Decimal:
    return to_decimal(value).quantize(COST, rounding=ROUND_HALF_UP)


def quantity(value) -> Decimal:
    return to_decimal(value).quantize(QTY, rounding=ROUND_HALF_UP)


def _check_rate(rate, context: str | None = None) -> Decimal:
    rate = to_decimal(rate)
    if rate <= 0:
        raise InvalidRateError(rate, context)
    return rate


def to_base(amount, rate, context: str | None = None) -> Decimal:
    """Foreign amount -> base amount (amount / rate)."""
    rate = _check_rate(rate, context)
    return money(to_decimal(amount) / rate)


def to_foreign(amount_base, rate, context: str | None = None) -> Decimal:
    """Base amount -> foreign amount (amount * rate)."""
    rate = _check_rate(rate, context)
    return money(to_decimal(amount_base) * rate)


def convert(amount, from_rate, to_rate, context: str | None = None) -> Decimal:
    """Foreign -> foreign, going through base."""
    return to_foreign(to_base(amount, from_rate, context), to_rate, context)
