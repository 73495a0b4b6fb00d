import logging
from decimal import Decimal

from ...models import Ingredient, StockHolding
from ...utils.decimal_utils import ZERO, decimal_or_zero, quantize

logger = logging.getLogger(__name__)


def weighted_average_cost(holdings, fallback_cost, scale: int) -> Decimal:
    """sum(q_i * c_i) / sum(q_i) over non-empty holdings, zero when none remain."""
    total_quantity = ZERO
    total_value = ZERO
    for holding in holdings:
        quantity = decimal_or_zero(holding.quantity)
        if quantity <= ZERO:
            continue
        total_quantity += quantity
        total_value += quantity * decimal_or_zero(holding.effective_unit_cost(fallback_cost))
    if total_quantity == ZERO:
        return quantize(ZERO, scale)
    return quantize(total_value / total_quantity, scale)


def live_holdings(session, ingredient_id):
    return (
        session.query(StockHolding)
        .filter(StockHolding.ingredient_id == ingredient_id, StockHolding.quantity > 0)
        .all()
    )


def recalculate_average_cost(session, settings, ingredient: Ingredient) -> Decimal:
    """Write the ingredient's global weighted-average cost back. Does not commit."""
    previous = ingredient.cost_per_unit
    average = weighted_average_cost(
        live_holdings(session, ingredient.id),
        decimal_or_zero(previous),
        settings.cost_scale,
    )
    ingredient.cost_per_unit = average
    session.flush()
    logger.info(f"COST: {ingredient.name} average cost {previous} -> {average}")
    return average


def refresh_prepared_cost(session, settings, ingredient_id):
    """Recalculate only when the ingredient's cost is derived from its batches."""
    ingredient = session.get(Ingredient, ingredient_id)
    if ingredient is not None and ingredient.is_prepared:
        return recalculate_average_cost(session, settings, ingredient)
    return None
