"""Decimal helpers shared by the ledger.

Quantities, weights and costs never pass through binary floating point inside
the ledger. Floats coming from callers are converted through ``str`` so the
shortest round-tripping representation is used (``0.1`` becomes ``Decimal('0.1')``).
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
DEFAULT_SCALE = 6


def coerce_decimal(value) -> Decimal | None:
    """Convert ``value`` to a finite ``Decimal`` or return ``None`` when malformed."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        candidate = value
    elif isinstance(value, int):
        candidate = Decimal(value)
    elif isinstance(value, float):
        candidate = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            candidate = Decimal(stripped)
        except InvalidOperation:
            return None
    else:
        return None
    if not candidate.is_finite():
        return None
    return candidate


def quantize(value: Decimal, scale: int = DEFAULT_SCALE) -> Decimal:
    exponent = Decimal(1).scaleb(-scale)
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def decimal_or_zero(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def to_str(value) -> str | None:
    """Render a decimal without exponent notation or trailing zeros."""
    if value is None:
        return None
    dec = decimal_or_zero(value)
    if dec == dec.to_integral_value():
        return str(dec.quantize(Decimal(1)))
    return format(dec.normalize(), "f")
