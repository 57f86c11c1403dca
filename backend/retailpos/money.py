# Overview: Decimal helpers for monetary arithmetic.

"""
Money arithmetic.

All monetary values are decimal.Decimal with two places. Rounding is
half-up and is applied at every accumulation step (line totals, running
subtotal, discount, tax, total, change), never only at the end.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """Convert int/float/str/Decimal to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary value")
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc


def round2(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount, percent) -> Decimal:
    return round2(to_decimal(amount) * to_decimal(percent) / Decimal(100))


def as_float(value) -> float | None:
    """JSON-friendly rendering of a stored money column."""
    if value is None:
        return None
    return float(round2(value))
