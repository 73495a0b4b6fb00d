"""Input coercion for quantities, weights and costs."""
from __future__ import annotations

from decimal import Decimal

from ..utils.decimal_utils import ZERO, coerce_decimal, quantize
from .errors import LedgerError
from .result import Err, Ok, Result


def parse_quantity(value, field: str = 'quantity', *, allow_zero: bool = False,
                   scale: int = 6) -> Result[Decimal]:
    """Coerce caller input to a positive (or non-negative) quantized Decimal."""
    amount = coerce_decimal(value)
    if amount is None:
        return Err(LedgerError.invalid_quantity(f'{field} must be a finite number', field=field, value=repr(value)))
    amount = quantize(amount, scale)
    if amount < ZERO or (amount == ZERO and not allow_zero):
        qualifier = 'non-negative' if allow_zero else 'positive'
        return Err(LedgerError.invalid_quantity(f'{field} must be {qualifier}', field=field, value=str(amount)))
    return Ok(amount)


def parse_cost(value, field: str = 'cost_per_unit', *, scale: int = 6) -> Result[Decimal]:
    return parse_quantity(value, field, allow_zero=True, scale=scale)


def parse_count(value, field: str = 'quantity') -> Result[int]:
    """Whole positive counts, e.g. product quantities on an order."""
    if isinstance(value, bool):
        return Err(LedgerError.invalid_quantity(f'{field} must be a whole number', field=field))
    amount = coerce_decimal(value)
    if amount is None or amount != amount.to_integral_value():
        return Err(LedgerError.invalid_quantity(f'{field} must be a whole number', field=field, value=repr(value)))
    if amount <= ZERO:
        return Err(LedgerError.invalid_quantity(f'{field} must be positive', field=field, value=str(amount)))
    return Ok(int(amount))
