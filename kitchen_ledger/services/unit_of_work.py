"""Explicit transaction boundary for every ledger mutation.

Services receive a ``LedgerUnitOfWork`` instead of reaching for a global
session. ``run()`` commits only when the work returns ``Ok``; an ``Err``, a
database error or an exhausted time budget rolls back every change made inside
the work function.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Tuple

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from .errors import LedgerError
from .result import Err, Result

logger = logging.getLogger(__name__)

_TIMEOUT_MARKERS = ('statement timeout', 'canceling statement', 'lock timeout', 'database is locked')

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'off'}


def _as_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        logger.warning(f"Expected a boolean ledger setting but received {value!r}; falling back to {default}")
        return default
    return bool(value)


def _as_roles(value, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    parts = value.replace(';', ',').split(',') if isinstance(value, str) else value
    roles = tuple(str(part).strip().upper() for part in parts if str(part).strip())
    return roles or default


@dataclass(frozen=True)
class LedgerSettings:
    timeout_seconds: float = 30.0
    lock_holdings: bool = True
    quantity_scale: int = 6
    cost_scale: int = 6
    privileged_roles: Tuple[str, ...] = ('MANAGER', 'OWNER')

    @property
    def cost_value_scale(self) -> int:
        """Places needed to hold quantity * unit cost without rounding."""
        return self.quantity_scale + self.cost_scale

    @classmethod
    def from_config(cls, config: Mapping) -> 'LedgerSettings':
        # Dict overrides given to create_app skip EnvReader, so coerce strings here too
        return cls(
            timeout_seconds=float(config.get('LEDGER_TRANSACTION_TIMEOUT_SECONDS', 30.0)),
            lock_holdings=_as_bool(config.get('LEDGER_LOCK_HOLDINGS'), True),
            quantity_scale=int(config.get('LEDGER_QUANTITY_SCALE', 6)),
            cost_scale=int(config.get('LEDGER_COST_SCALE', 6)),
            privileged_roles=_as_roles(config.get('LEDGER_PRIVILEGED_ROLES'), ('MANAGER', 'OWNER')),
        )


class LedgerUnitOfWork:
    def __init__(self, session, settings: LedgerSettings | None = None, clock: Callable[[], float] = time.monotonic):
        self.session = session
        self.settings = settings or LedgerSettings()
        self._clock = clock

    @classmethod
    def from_app(cls, app, session=None) -> 'LedgerUnitOfWork':
        from ..extensions import db

        return cls(session or db.session, LedgerSettings.from_config(app.config))

    def run(self, work: Callable[[], Result], *, operation: str) -> Result:
        budget = self.settings.timeout_seconds
        started = self._clock()
        try:
            self._apply_statement_timeout()
            result = work()
            if not result.ok:
                self.session.rollback()
                logger.info(f"{operation}: rolled back ({result.error.kind.value})")
                return result

            elapsed = self._clock() - started
            if budget and elapsed > budget:
                self.session.rollback()
                logger.warning(f"{operation}: {elapsed:.3f}s exceeded {budget}s budget, rolled back")
                return Err(LedgerError.transaction_timeout(operation, budget))

            self.session.commit()
            logger.debug(f"{operation}: committed in {elapsed:.3f}s")
            return result
        except StaleDataError:
            self.session.rollback()
            logger.warning(f"{operation}: stale holding version, rolled back")
            return Err(LedgerError.concurrent_modification(operation))
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"{operation}: integrity violation: {e.orig}")
            return Err(LedgerError.conflict(f'{operation} violated a data constraint', reason=str(e.orig)))
        except (OperationalError, DBAPIError) as e:
            self.session.rollback()
            reason = str(getattr(e, 'orig', e))
            if any(marker in reason.lower() for marker in _TIMEOUT_MARKERS):
                logger.warning(f"{operation}: database timeout: {reason}")
                return Err(LedgerError.transaction_timeout(operation, budget))
            logger.error(f"{operation}: database error: {reason}")
            return Err(LedgerError.transaction_failed(operation, reason))
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"{operation}: SQLAlchemy error: {e}")
            return Err(LedgerError.transaction_failed(operation, str(e)))
        except Exception:
            self.session.rollback()
            logger.exception(f"{operation}: unexpected error, rolled back")
            raise

    def _apply_statement_timeout(self):
        budget = self.settings.timeout_seconds
        if not budget:
            return
        bind = self.session.get_bind()
        if bind.dialect.name == 'postgresql':
            self.session.execute(text(f"SET LOCAL statement_timeout = {int(budget * 1000)}"))


def load_for_update(session, settings: LedgerSettings, model, entity_id):
    """
    Re-read the row that guards a state change inside the current transaction.

    ``populate_existing`` refreshes an object the session may already hold from
    an earlier read, so the status checks that follow see committed state. With
    ``lock_holdings`` on the row is also locked until commit, serializing
    concurrent transitions of the same task, visit, pan or shipment.
    """
    query = session.query(model).filter(model.id == entity_id).populate_existing()
    if settings.lock_holdings:
        query = query.with_for_update()
    return query.one_or_none()
