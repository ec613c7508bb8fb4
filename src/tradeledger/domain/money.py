"""Fixed-point helpers. Currency has 2 fractional digits, rates and unit prices 4."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
BASIS = Decimal("0.0001")
ZERO = Decimal(0)
HUNDRED = Decimal(100)
MONTHS_PER_YEAR = 12


def to_currency(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_rate(value: Decimal) -> Decimal:
    return value.quantize(BASIS, rounding=ROUND_HALF_UP)


def to_price(value: Decimal) -> Decimal:
    return value.quantize(BASIS, rounding=ROUND_HALF_UP)


def ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator at rate precision, 0 when the denominator is 0."""
    if denominator == 0:
        return ZERO
    return to_rate(numerator / denominator)


def percentage(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        return ZERO
    return to_rate(numerator / denominator * HUNDRED)
