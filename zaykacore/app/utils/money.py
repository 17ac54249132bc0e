"""Decimal helpers with precise ₹0.01 rounding."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ROUND = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: object) -> Decimal:
    """Convert ``value`` to :class:`Decimal` without float artefacts."""

    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc


def money(value: object) -> Decimal:
    """Return ``value`` rounded half-up to two decimal places."""

    return to_decimal(value).quantize(ROUND, rounding=ROUND_HALF_UP)


def fmt(value: object) -> str:
    """Render ``value`` with exactly two decimals, e.g. ``"27.00"``."""

    return f"{money(value):.2f}"


def as_number(value: object) -> float:
    """Return a JSON-friendly float for ``value`` rounded to paise."""

    return float(money(value))
