# Overview: Decimal helpers for money and quantities.

"""
Rounding policy (authoritative)

- Inputs are parsed from their string form into Decimal, never via float math.
- Money is rounded to 2 places with ROUND_HALF_UP (31.665 -> 31.67).
- Each line amount is rounded on its own; the subtotal is the sum of the
  rounded amounts; tax is rounded on its own; total = subtotal + tax.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENTS = Decimal("0.01")

# (precision, scale) of the NUMERIC columns these values are stored in
QUANTITY_NUMERIC = (14, 3)
RATE_NUMERIC = (14, 4)
MONEY_NUMERIC = (14, 2)
TAX_RATE_NUMERIC = (5, 2)


def to_decimal(value: Any) -> Decimal:
    """
    Convert JSON-ish input to a finite Decimal.

    Raises ValueError for bools, blanks, NaN/Infinity and anything unparseable.
    """
    if value is None or isinstance(value, bool):
        raise ValueError("not a number")
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if not text:
            raise ValueError("not a number")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValueError("not a number")
    if not result.is_finite():
        raise ValueError("not a finite number")
    return result


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return -exponent if exponent < 0 else 0


def fits_numeric(value: Decimal, precision: int, scale: int) -> bool:
    """
    True when value can be stored in a NUMERIC(precision, scale) column
    without rounding: at most `scale` decimal places and at most
    `precision - scale` integer digits.
    """
    return decimal_places(value) <= scale and abs(value) < Decimal(10) ** (precision - scale)


def format_money(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(round_money(Decimal(value)))


def format_quantity(value: Decimal | None) -> str | None:
    # Drop trailing zeros so "4.000" reads as "4"
    if value is None:
        return None
    normalized = Decimal(value).normalize()
    if normalized == normalized.to_integral():
        return str(normalized.quantize(Decimal(1)))
    return format(normalized, "f")


def format_rate(value: Decimal | None) -> str | None:
    # Rates keep extra precision (10.555) but print at least 2 places
    if value is None:
        return None
    d = Decimal(value)
    if d == d.quantize(CENTS):
        return str(d.quantize(CENTS))
    return format(d.normalize(), "f")
