"""Decimal helpers shared by every commission amount and percentage.

Amounts are rounded half-up to cents and percentages half-up to three
decimals. Nothing in the app should round any other way.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
PERCENT_STEP = Decimal("0.001")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_percent(value) -> Decimal:
    return to_decimal(value).quantize(PERCENT_STEP, rounding=ROUND_HALF_UP)


def percent_of(base, percent) -> Decimal:
    """``base * percent / 100`` rounded to cents."""
    return quantize_money(to_decimal(base) * to_decimal(percent) / HUNDRED)


def surcharge_amount(amount, percent, *, is_cash: bool = False) -> Decimal:
    """Flat surcharge (IVA) shown next to an amount. Cash payments carry none."""
    if is_cash:
        return ZERO.quantize(CENT)
    return percent_of(amount, percent)
