"""Currency <-> minor-unit conversion.

Every site that turns an amount into ledger cents (record creation) or back
(verification, projection) goes through these helpers so the rounding mode is
applied uniformly. ``ROUNDING`` is the single knob.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

ROUNDING: str = ROUND_HALF_UP

_ONE = Decimal(1)
_CENT = Decimal("0.01")
_HUNDRED = Decimal(100)


def _as_decimal(amount: Decimal | int | float | str) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, bool):
        raise TypeError("amount must be a number, not bool")
    # ``str`` first so binary floats such as 994.8 keep their decimal spelling.
    return Decimal(str(amount))


def to_minor_units(amount: Decimal | int | float | str) -> int:
    """Return ``amount * 100`` rounded to an integer number of cents."""

    return int((_as_decimal(amount) * _HUNDRED).quantize(_ONE, rounding=ROUNDING))


def from_minor_units(minor: int) -> Decimal:
    """Return the exact currency amount for ``minor`` cents."""

    return (Decimal(int(minor)) / _HUNDRED).quantize(_CENT)


def quantize_2dp(amount: Decimal | int | float | str) -> Decimal:
    return _as_decimal(amount).quantize(_CENT, rounding=ROUNDING)


__all__ = ["ROUNDING", "from_minor_units", "quantize_2dp", "to_minor_units"]
