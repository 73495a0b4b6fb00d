import logging
from typing import Any, Dict, Optional

from .errors import LedgerError
from .unit_of_work import LedgerUnitOfWork


class BaseService:
    """Base service class providing common functionality"""

    def __init__(self, uow: LedgerUnitOfWork):
        self.uow = uow
        self.logger = logging.getLogger(f'kitchen_ledger.services.{self.__class__.__name__}')

    @property
    def session(self):
        return self.uow.session

    @property
    def settings(self):
        return self.uow.settings

    def log_operation(self, operation: str, data: Dict[str, Any], user_id: Optional[int] = None):
        """Centralized operation logging"""
        self.logger.info(f"Operation: {operation} {data}", extra={
            'operation': operation,
            'data': data,
            'user_id': user_id,
            'service': self.__class__.__name__,
        })

    def log_failure(self, operation: str, error: LedgerError):
        self.logger.warning(f"{operation} rejected: {error}", extra={
            'operation': operation,
            'error_kind': error.kind.value,
            'service': self.__class__.__name__,
        })
