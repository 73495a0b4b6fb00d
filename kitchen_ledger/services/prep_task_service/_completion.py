import logging
from decimal import Decimal

from ...models import PrepTask, PrepTaskStatus
from ...utils.decimal_utils import ZERO, quantize
from ...utils.timezone_utils import TimezoneUtils
from ..catalog_service import validate_prep_recipe
from ..recipe_resolution import scale_prep_recipe
from ..result import Ok, Result
from ..stock_ledger import add_stock, deduct_fifo, recalculate_average_cost, refresh_prepared_cost

logger = logging.getLogger(__name__)


def complete_prep_run(session, settings, task: PrepTask, quantity_run: Decimal, executed_by_id) -> Result[PrepTask]:
    """
    Consume the recipe inputs and book the produced output for one task.

    Runs inside the caller's unit of work: the first failed deduction is
    returned as-is and the caller rolls everything back.
    """
    recipe = task.prep_recipe
    checked = validate_prep_recipe(session, recipe)
    if not checked.ok:
        return checked
    expansion = scale_prep_recipe(recipe, quantity_run, scale=settings.quantity_scale)
    logger.info(f"PREP: completing task {task.id} ({recipe.name}) qty={quantity_run} runs={expansion.runs}")

    consumed_cost = ZERO
    for ingredient_id, required in expansion.inputs:
        if required <= ZERO:
            continue
        deducted = deduct_fifo(session, settings, ingredient_id, task.location_id, required)
        if not deducted.ok:
            logger.info(f"PREP: task {task.id} aborted on ingredient {ingredient_id}: {deducted.error.message}")
            return deducted
        consumed_cost += deducted.value.total_cost
        refresh_prepared_cost(session, settings, ingredient_id)

    if quantity_run > ZERO:
        unit_cost = quantize(consumed_cost / quantity_run, settings.cost_scale)
        produced = add_stock(session, settings, recipe.output_ingredient_id, task.location_id,
                             quantity_run, unit_cost, merge=True)
        if not produced.ok:
            return produced
    else:
        logger.info(f"PREP: task {task.id} completed with zero output; inputs consumed only")

    recalculate_average_cost(session, settings, recipe.output_ingredient)

    task.status = PrepTaskStatus.COMPLETED
    task.quantity_run = quantity_run
    task.input_cost = quantize(consumed_cost, settings.cost_value_scale)
    task.executed_by_id = executed_by_id
    task.completed_at = TimezoneUtils.utc_now()
    session.flush()
    return Ok(task)
