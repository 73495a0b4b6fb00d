import logging
from decimal import Decimal
from typing import Dict, List

from ...models import Ingredient, PrepRecipe, PrepTask, PrepTaskStatus
from ...utils.decimal_utils import ZERO, quantize
from ..errors import LedgerError
from ..result import Err, Ok, Result

logger = logging.getLogger(__name__)


def producing_recipe(session, ingredient_id):
    """The oldest prep recipe whose output is the ingredient."""
    return (
        session.query(PrepRecipe)
        .filter(PrepRecipe.output_ingredient_id == ingredient_id)
        .order_by(PrepRecipe.id.asc())
        .first()
    )


def build_tasks_for_requirements(session, settings, requirements: Dict[int, Decimal], location_id,
                                 notes=None) -> Result[List[PrepTask]]:
    """One PENDING task per required prepared ingredient that has a recipe."""
    created = []
    for ingredient_id, quantity in requirements.items():
        ingredient = session.get(Ingredient, ingredient_id)
        if not ingredient:
            return Err(LedgerError.not_found('Ingredient', ingredient_id))
        if quantity is None or quantity <= ZERO:
            continue
        if not ingredient.is_prepared:
            logger.info(f"PREP: {ingredient.name} is raw; no task generated")
            continue
        recipe = producing_recipe(session, ingredient_id)
        if recipe is None:
            logger.warning(f"PREP: no prep recipe produces {ingredient.name}; skipping")
            continue
        task = PrepTask(
            prep_recipe_id=recipe.id,
            location_id=location_id,
            target_quantity=quantize(quantity, settings.quantity_scale),
            status=PrepTaskStatus.PENDING,
            notes=notes,
        )
        session.add(task)
        created.append(task)
    session.flush()
    return Ok(created)
