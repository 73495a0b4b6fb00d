import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Tuple

from ...models import Ingredient, Location, StockHolding
from ...utils.decimal_utils import ZERO, decimal_or_zero, quantize
from ..errors import LedgerError
from ..result import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsumedBatch:
    holding_id: int
    quantity: Decimal
    unit_cost: Decimal
    cost: Decimal


@dataclass(frozen=True)
class DeductionOutcome:
    ingredient_id: int
    location_id: int
    quantity: Decimal
    total_cost: Decimal
    batches: Tuple[ConsumedBatch, ...]

    @property
    def average_unit_cost(self) -> Decimal:
        if self.quantity == ZERO:
            return ZERO
        return self.total_cost / self.quantity


def candidate_holdings(session, ingredient_id, location_id, *, lock=False) -> List[StockHolding]:
    """Non-empty holdings at a location, oldest first."""
    query = (
        session.query(StockHolding)
        .filter(
            StockHolding.ingredient_id == ingredient_id,
            StockHolding.location_id == location_id,
            StockHolding.quantity > 0,
        )
        .order_by(StockHolding.created_at.asc(), StockHolding.id.asc())
    )
    if lock:
        query = query.with_for_update()
    return query.all()


def plan_fifo_deduction(holdings, quantity: Decimal, fallback_cost: Decimal):
    """
    Walk holdings oldest first and decide how much to take from each.

    Returns (plan, available) where plan is a list of (holding, take, unit_cost).
    The plan is only meaningful when available >= quantity.
    """
    available = sum((decimal_or_zero(h.quantity) for h in holdings), ZERO)
    plan = []
    remaining = quantity
    for holding in holdings:
        if remaining <= ZERO:
            break
        take = min(remaining, decimal_or_zero(holding.quantity))
        if take <= ZERO:
            continue
        plan.append((holding, take, decimal_or_zero(holding.effective_unit_cost(fallback_cost))))
        remaining -= take
    return plan, available


def deduct_fifo(session, settings, ingredient_id, location_id, quantity: Decimal) -> Result[DeductionOutcome]:
    """
    Consume ``quantity`` of an ingredient at a location, oldest batch first.

    Does not commit. When the location holds less than requested nothing is
    touched and an InsufficientStock error is returned.
    """
    if quantity is None or quantity <= ZERO:
        return Err(LedgerError.invalid_quantity('Deduction quantity must be positive',
                                                value=str(quantity)))

    ingredient = session.get(Ingredient, ingredient_id)
    if not ingredient:
        return Err(LedgerError.not_found('Ingredient', ingredient_id))
    if not session.get(Location, location_id):
        return Err(LedgerError.not_found('Location', location_id))

    holdings = candidate_holdings(session, ingredient_id, location_id, lock=settings.lock_holdings)
    fallback_cost = decimal_or_zero(ingredient.cost_per_unit)
    plan, available = plan_fifo_deduction(holdings, quantity, fallback_cost)

    if available < quantity:
        logger.info(f"FIFO: insufficient {ingredient.name} at location {location_id}: "
                    f"required {quantity}, available {available}")
        return Err(LedgerError.insufficient_stock(
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            unit=ingredient.unit,
            location_id=location_id,
            required=quantity,
            available=available,
        ))

    batches = []
    total_cost = ZERO
    for holding, take, unit_cost in plan:
        holding.quantity = quantize(decimal_or_zero(holding.quantity) - take, settings.quantity_scale)
        line_cost = take * unit_cost
        total_cost += line_cost
        batches.append(ConsumedBatch(holding.id, take, unit_cost, line_cost))
        logger.debug(f"FIFO: took {take} from holding {holding.id} @ {unit_cost}, left {holding.quantity}")

    # Surface version conflicts inside the caller's transaction
    session.flush()

    outcome = DeductionOutcome(
        ingredient_id=ingredient.id,
        location_id=location_id,
        quantity=quantity,
        total_cost=quantize(total_cost, settings.cost_value_scale),
        batches=tuple(batches),
    )
    logger.info(f"FIFO: deducted {quantity} {ingredient.unit} of {ingredient.name} at location {location_id} "
                f"across {len(batches)} batch(es), cost {outcome.total_cost}")
    return Ok(outcome)
