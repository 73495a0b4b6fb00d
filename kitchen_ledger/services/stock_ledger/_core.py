from decimal import Decimal

from ...models import Ingredient, StockHolding
from ...utils.decimal_utils import ZERO, coerce_decimal, decimal_or_zero, quantize
from ..base_service import BaseService
from ..errors import LedgerError
from ..result import Err, Ok, Result
from ..validation import parse_cost, parse_quantity
from ._additive_ops import add_stock
from ._costing import recalculate_average_cost, refresh_prepared_cost
from ._fifo_ops import DeductionOutcome, deduct_fifo
from ._validation import available_quantity, validate_stock_integrity


class StockLedgerService(BaseService):
    """
    Canonical entry point for stock movements.

    Every public method runs in its own unit of work. Workflows that need
    several movements in one transaction compose the module-level functions
    (``deduct_fifo``, ``add_stock``, ``recalculate_average_cost``) instead.
    """

    def deduct(self, ingredient_id, location_id, quantity) -> Result[DeductionOutcome]:
        parsed = parse_quantity(quantity, scale=self.settings.quantity_scale)
        if not parsed.ok:
            return parsed

        def work():
            outcome = deduct_fifo(self.session, self.settings, ingredient_id, location_id, parsed.value)
            if outcome.ok:
                refresh_prepared_cost(self.session, self.settings, ingredient_id)
            return outcome

        result = self.uow.run(work, operation='stock.deduct')
        if result.ok:
            self.log_operation('stock.deduct', {
                'ingredient_id': ingredient_id, 'location_id': location_id,
                'quantity': str(parsed.value), 'cost': str(result.value.total_cost),
            })
        return result

    def add(self, ingredient_id, location_id, quantity, unit_cost=None, *, merge=False,
            acquired_at=None, expires_at=None) -> Result[StockHolding]:
        parsed = parse_quantity(quantity, scale=self.settings.quantity_scale)
        if not parsed.ok:
            return parsed
        cost = None
        if unit_cost is not None:
            parsed_cost = parse_cost(unit_cost, 'unit_cost', scale=self.settings.cost_scale)
            if not parsed_cost.ok:
                return parsed_cost
            cost = parsed_cost.value

        def work():
            return add_stock(self.session, self.settings, ingredient_id, location_id, parsed.value, cost,
                             merge=merge, acquired_at=acquired_at, expires_at=expires_at)

        result = self.uow.run(work, operation='stock.add')
        if result.ok:
            self.log_operation('stock.add', {
                'ingredient_id': ingredient_id, 'location_id': location_id,
                'quantity': str(parsed.value), 'merge': merge, 'holding_id': result.value.id,
            })
        return result

    def receive_stock(self, ingredient_id, location_id, quantity, unit_cost=None, *,
                      acquired_at=None, expires_at=None) -> Result[StockHolding]:
        """Book a purchase delivery as a fresh batch."""
        parsed = parse_quantity(quantity, scale=self.settings.quantity_scale)
        if not parsed.ok:
            return parsed
        cost = None
        if unit_cost is not None:
            parsed_cost = parse_cost(unit_cost, 'unit_cost', scale=self.settings.cost_scale)
            if not parsed_cost.ok:
                return parsed_cost
            cost = parsed_cost.value

        def work():
            ingredient = self.session.get(Ingredient, ingredient_id)
            if not ingredient:
                return Err(LedgerError.not_found('Ingredient', ingredient_id))
            batch_cost = cost if cost is not None else decimal_or_zero(ingredient.cost_per_unit)
            added = add_stock(self.session, self.settings, ingredient_id, location_id, parsed.value, batch_cost,
                              acquired_at=acquired_at, expires_at=expires_at)
            if added.ok:
                refresh_prepared_cost(self.session, self.settings, ingredient_id)
            return added

        result = self.uow.run(work, operation='stock.receive')
        if result.ok:
            self.log_operation('stock.receive', {
                'ingredient_id': ingredient_id, 'location_id': location_id,
                'quantity': str(parsed.value), 'holding_id': result.value.id,
            })
        return result

    def recalculate_average_cost(self, ingredient_id) -> Result[Decimal]:
        def work():
            ingredient = self.session.get(Ingredient, ingredient_id)
            if not ingredient:
                return Err(LedgerError.not_found('Ingredient', ingredient_id))
            return Ok(recalculate_average_cost(self.session, self.settings, ingredient))

        return self.uow.run(work, operation='stock.recalculate_average_cost')

    def adjust_holding(self, holding_id, *, quantity=None, adjustment=None) -> Result[StockHolding]:
        """Stock-take correction: set an absolute quantity or apply a signed delta."""
        if (quantity is None) == (adjustment is None):
            return Err(LedgerError.invalid_argument('Provide exactly one of quantity or adjustment'))

        if quantity is not None:
            parsed = parse_quantity(quantity, allow_zero=True, scale=self.settings.quantity_scale)
            if not parsed.ok:
                return parsed
        else:
            delta = coerce_decimal(adjustment)
            if delta is None:
                return Err(LedgerError.invalid_quantity('adjustment must be a finite number',
                                                        value=repr(adjustment)))
            if delta == ZERO:
                return Err(LedgerError.invalid_quantity('adjustment cannot be zero'))
            delta = quantize(delta, self.settings.quantity_scale)

        def work():
            holding = self.session.get(StockHolding, holding_id)
            if not holding:
                return Err(LedgerError.not_found('StockHolding', holding_id))
            current = decimal_or_zero(holding.quantity)
            target = parsed.value if quantity is not None else current + delta
            if target < ZERO:
                return Err(LedgerError.invalid_quantity(
                    'Adjustment would make the holding negative',
                    holding_id=holding_id, current=current, requested=target,
                ))
            holding.quantity = target
            self.session.flush()
            refresh_prepared_cost(self.session, self.settings, holding.ingredient_id)
            self.logger.info(f"STOCK: holding {holding_id} adjusted {current} -> {target}")
            return Ok(holding)

        return self.uow.run(work, operation='stock.adjust_holding')

    def available_quantity(self, ingredient_id, location_id=None) -> Decimal:
        return available_quantity(self.session, ingredient_id, location_id)

    def validate_stock_integrity(self):
        return validate_stock_integrity(self.session, self.settings)
