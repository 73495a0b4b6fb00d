"""
Stock Ledger - the only writer of stock holdings.

Public operations go through ``StockLedgerService``; multi-step workflows
(prep completion, orders, waste, buffet refills) compose the non-committing
functions re-exported here inside their own unit of work.
"""

from ._core import StockLedgerService
from ._fifo_ops import ConsumedBatch, DeductionOutcome, deduct_fifo, plan_fifo_deduction
from ._additive_ops import add_stock
from ._costing import recalculate_average_cost, refresh_prepared_cost, weighted_average_cost
from ._validation import available_quantity, validate_stock_integrity

__all__ = [
    'StockLedgerService',
    'ConsumedBatch',
    'DeductionOutcome',
    'deduct_fifo',
    'plan_fifo_deduction',
    'add_stock',
    'recalculate_average_cost',
    'refresh_prepared_cost',
    'weighted_average_cost',
    'available_quantity',
    'validate_stock_integrity',
]
