"""
Ledger services.

Every mutating operation returns ``Ok(value)`` or ``Err(LedgerError)`` and runs
inside the ``LedgerUnitOfWork`` handed to the service.
"""

from .actor import Actor
from .errors import ErrorKind, LedgerError, LedgerFailure
from .result import Err, Ok, Result
from .unit_of_work import LedgerSettings, LedgerUnitOfWork
from .stock_ledger import StockLedgerService
from .prep_task_service import PrepTaskService
from .order_service import OrderService
from .waste_service import WasteService
from .buffet_service import BuffetService
from .catalog_service import CatalogService

__all__ = [
    'Actor',
    'ErrorKind',
    'LedgerError',
    'LedgerFailure',
    'Ok',
    'Err',
    'Result',
    'LedgerSettings',
    'LedgerUnitOfWork',
    'StockLedgerService',
    'PrepTaskService',
    'OrderService',
    'WasteService',
    'BuffetService',
    'CatalogService',
]
