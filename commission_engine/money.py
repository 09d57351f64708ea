"""
Money primitives for the Commission & Installment Engine

All monetary values are Decimal, fixed at 2 decimal places.
Rounding is ROUND_HALF_UP (half away from zero), matching Postgres ROUND().
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal('0.01')
ZERO = Decimal('0')
# Largest value a NUMERIC(12, 2) column holds
MAX_MONEY = Decimal('9999999999.99')


def to_decimal(value) -> Decimal:
    """
    Coerce any numeric-ish input into a Decimal.

    None, empty strings and unparseable values become zero. Floats go
    through str() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if value is None or value == '':
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def floor_to_cent(value: Decimal) -> Decimal:
    """Truncate toward zero at the cent (floor for non-negative values)."""
    return value.quantize(CENT, rounding=ROUND_DOWN)


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places for JSON output."""
    return float(quantize_money(to_decimal(value)))


def has_at_most_places(value: Decimal, places: int) -> bool:
    return value == value.quantize(Decimal(1).scaleb(-places))


def has_at_most_two_places(value: Decimal) -> bool:
    return has_at_most_places(value, 2)


def fmt(value) -> str:
    """Format a number as currency string for log lines and messages."""
    return f"${to_decimal(value):,.2f}"
