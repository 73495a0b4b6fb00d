"""Typed failures returned by ledger operations."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

from ..utils.decimal_utils import to_str


class ErrorKind(str, Enum):
    INSUFFICIENT_STOCK = 'InsufficientStock'
    MISSING_CONFIGURATION = 'MissingConfiguration'
    INVALID_QUANTITY = 'InvalidQuantity'
    INVALID_ARGUMENT = 'InvalidArgument'
    NOT_FOUND = 'NotFound'
    INVALID_STATE_TRANSITION = 'InvalidStateTransition'
    UNAUTHORIZED = 'Unauthorized'
    CONFLICT = 'Conflict'
    TRANSACTION_TIMEOUT = 'TransactionTimeout'
    CONCURRENT_MODIFICATION = 'ConcurrentModification'
    TRANSACTION_FAILED = 'TransactionFailed'


@dataclass(frozen=True)
class LedgerError:
    kind: ErrorKind
    message: str
    detail: Dict[str, Any] = field(default_factory=dict)
    retryable: bool = False

    def __str__(self):
        return f'{self.kind.value}: {self.message}'

    @classmethod
    def insufficient_stock(cls, *, ingredient_id: int, ingredient_name: str, unit: str,
                           location_id: int, required: Decimal, available: Decimal) -> 'LedgerError':
        return cls(
            ErrorKind.INSUFFICIENT_STOCK,
            f'Insufficient stock for {ingredient_name}: required {to_str(required)} {unit}, '
            f'available {to_str(available)} {unit}',
            {
                'ingredient_id': ingredient_id,
                'ingredient_name': ingredient_name,
                'unit': unit,
                'location_id': location_id,
                'required': required,
                'available': available,
            },
        )

    @classmethod
    def missing_configuration(cls, message: str, **detail) -> 'LedgerError':
        return cls(ErrorKind.MISSING_CONFIGURATION, message, detail)

    @classmethod
    def missing_station_location(cls, prep_station_id, found: int = 0) -> 'LedgerError':
        if found:
            message = f'Prep station {prep_station_id} maps to {found} stock-bearing locations; expected exactly one'
        else:
            message = f'Prep station {prep_station_id} has no stock-bearing location'
        return cls.missing_configuration(message, prep_station_id=prep_station_id, locations_found=found)

    @classmethod
    def invalid_quantity(cls, message: str, **detail) -> 'LedgerError':
        return cls(ErrorKind.INVALID_QUANTITY, message, detail)

    @classmethod
    def invalid_argument(cls, message: str, **detail) -> 'LedgerError':
        return cls(ErrorKind.INVALID_ARGUMENT, message, detail)

    @classmethod
    def not_found(cls, entity: str, entity_id) -> 'LedgerError':
        return cls(ErrorKind.NOT_FOUND, f'{entity} {entity_id} not found', {'entity': entity, 'id': entity_id})

    @classmethod
    def invalid_state_transition(cls, entity: str, current: str, target: str) -> 'LedgerError':
        return cls(
            ErrorKind.INVALID_STATE_TRANSITION,
            f'Cannot move {entity} from {current} to {target}',
            {'entity': entity, 'current': current, 'target': target},
        )

    @classmethod
    def unauthorized(cls, message: str, **detail) -> 'LedgerError':
        return cls(ErrorKind.UNAUTHORIZED, message, detail)

    @classmethod
    def conflict(cls, message: str, **detail) -> 'LedgerError':
        return cls(ErrorKind.CONFLICT, message, detail)

    @classmethod
    def transaction_timeout(cls, operation: str, budget_seconds: float) -> 'LedgerError':
        return cls(
            ErrorKind.TRANSACTION_TIMEOUT,
            f'{operation} exceeded its {budget_seconds}s transaction budget and was rolled back',
            {'operation': operation, 'budget_seconds': budget_seconds},
            retryable=True,
        )

    @classmethod
    def concurrent_modification(cls, operation: str) -> 'LedgerError':
        return cls(
            ErrorKind.CONCURRENT_MODIFICATION,
            f'{operation} conflicted with a concurrent update; retry the operation',
            {'operation': operation},
            retryable=True,
        )

    @classmethod
    def transaction_failed(cls, operation: str, reason: str) -> 'LedgerError':
        return cls(
            ErrorKind.TRANSACTION_FAILED,
            f'{operation} failed at the database level',
            {'operation': operation, 'reason': reason},
            retryable=True,
        )


class LedgerFailure(Exception):
    """Raised by ``Err.unwrap()`` for callers that prefer exceptions."""

    def __init__(self, error: LedgerError):
        super().__init__(str(error))
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind
