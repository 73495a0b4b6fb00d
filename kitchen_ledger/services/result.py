from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import LedgerError, LedgerFailure

T = TypeVar('T')


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: LedgerError

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        raise LedgerFailure(self.error)


Result = Union[Ok[T], Err]

__all__ = ['Ok', 'Err', 'Result']
