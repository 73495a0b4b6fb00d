import logging
from decimal import Decimal

from ...models import Ingredient, Location, StockHolding
from ...utils.decimal_utils import ZERO, decimal_or_zero, quantize
from ...utils.timezone_utils import TimezoneUtils
from ..errors import LedgerError
from ..result import Err, Ok, Result

logger = logging.getLogger(__name__)


def _latest_holding(session, ingredient_id, location_id, *, lock=False):
    query = (
        session.query(StockHolding)
        .filter_by(ingredient_id=ingredient_id, location_id=location_id)
        .order_by(StockHolding.created_at.desc(), StockHolding.id.desc())
    )
    if lock:
        query = query.with_for_update()
    return query.first()


def add_stock(
    session,
    settings,
    ingredient_id,
    location_id,
    quantity: Decimal,
    unit_cost: Decimal = None,
    *,
    merge: bool = False,
    acquired_at=None,
    expires_at=None,
) -> Result[StockHolding]:
    """
    Put stock into a location without committing.

    ``merge=False`` always opens a new batch. ``merge=True`` tops up the most
    recent batch at the location (blending its cost by quantity) and only
    opens a new one when the location has never held the ingredient.
    """
    if quantity is None or quantity <= ZERO:
        return Err(LedgerError.invalid_quantity('Added quantity must be positive', value=str(quantity)))
    if unit_cost is not None and unit_cost < ZERO:
        return Err(LedgerError.invalid_quantity('Unit cost cannot be negative', value=str(unit_cost)))

    ingredient = session.get(Ingredient, ingredient_id)
    if not ingredient:
        return Err(LedgerError.not_found('Ingredient', ingredient_id))
    location = session.get(Location, location_id)
    if not location:
        return Err(LedgerError.not_found('Location', location_id))
    if not location.is_stock_bearing:
        return Err(LedgerError.conflict(f'Location {location.name} does not hold stock',
                                        location_id=location_id, kind=location.kind))

    quantity = quantize(quantity, settings.quantity_scale)
    cost = quantize(unit_cost, settings.cost_scale) if unit_cost is not None else None

    if merge:
        holding = _latest_holding(session, ingredient_id, location_id, lock=settings.lock_holdings)
        if holding is not None:
            current = decimal_or_zero(holding.quantity)
            if cost is not None:
                existing_cost = decimal_or_zero(holding.effective_unit_cost(ingredient.cost_per_unit))
                blended = (current * existing_cost + quantity * cost) / (current + quantity)
                holding.cost_at_acquisition = quantize(blended, settings.cost_scale)
            holding.quantity = current + quantity
            session.flush()
            logger.info(f"STOCK: merged {quantity} {ingredient.unit} of {ingredient.name} into holding "
                        f"{holding.id}, now {holding.quantity}")
            return Ok(holding)

    holding = StockHolding(
        ingredient_id=ingredient_id,
        location_id=location_id,
        quantity=quantity,
        cost_at_acquisition=cost,
        acquired_at=acquired_at or TimezoneUtils.utc_now(),
        expires_at=expires_at,
    )
    session.add(holding)
    session.flush()
    logger.info(f"STOCK: new holding {holding.id} with {quantity} {ingredient.unit} of {ingredient.name} "
                f"at location {location_id} @ {cost}")
    return Ok(holding)
