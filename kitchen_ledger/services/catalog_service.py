import logging

from ..models import Ingredient, PrepRecipe, PrepRecipeInput, ProductRecipeItem, StockHolding
from ..utils.decimal_utils import ZERO, coerce_decimal
from .base_service import BaseService
from .errors import LedgerError
from .result import Err, Ok, Result
from .stock_ledger import recalculate_average_cost
from .validation import parse_cost

logger = logging.getLogger(__name__)


def validate_prep_recipe(session, recipe: PrepRecipe) -> Result[PrepRecipe]:
    """Check a prep recipe before it is saved or used."""
    output_quantity = coerce_decimal(recipe.output_quantity)
    if output_quantity is None or output_quantity <= ZERO:
        return Err(LedgerError.invalid_quantity('Prep recipe output quantity must be positive',
                                                recipe=recipe.name))
    if not recipe.inputs:
        return Err(LedgerError.missing_configuration(f'Prep recipe {recipe.name} has no inputs',
                                                     recipe=recipe.name))

    output = session.get(Ingredient, recipe.output_ingredient_id)
    if not output:
        return Err(LedgerError.not_found('Ingredient', recipe.output_ingredient_id))
    if not output.is_prepared:
        return Err(LedgerError.conflict(f'{output.name} is not a prepared ingredient',
                                        ingredient_id=output.id))

    for line in recipe.inputs:
        quantity = coerce_decimal(line.quantity)
        if quantity is None or quantity <= ZERO:
            return Err(LedgerError.invalid_quantity('Prep recipe input quantities must be positive',
                                                    recipe=recipe.name, ingredient_id=line.ingredient_id))
        if line.ingredient_id == recipe.output_ingredient_id:
            return Err(LedgerError.conflict(f'Prep recipe {recipe.name} uses its own output as an input',
                                            ingredient_id=line.ingredient_id))
    return Ok(recipe)


def ingredient_references(session, ingredient_id) -> dict:
    """Counts of rows that keep an ingredient from being deleted."""
    return {
        'holdings': session.query(StockHolding).filter_by(ingredient_id=ingredient_id).count(),
        'product_recipes': session.query(ProductRecipeItem).filter_by(ingredient_id=ingredient_id).count(),
        'prep_inputs': session.query(PrepRecipeInput).filter_by(ingredient_id=ingredient_id).count(),
        'prep_outputs': session.query(PrepRecipe).filter_by(output_ingredient_id=ingredient_id).count(),
    }


class CatalogService(BaseService):
    """Ingredient cost ownership and referential checks."""

    def set_raw_cost(self, ingredient_id, cost) -> Result[Ingredient]:
        parsed = parse_cost(cost, scale=self.settings.cost_scale)
        if not parsed.ok:
            return parsed

        def work():
            ingredient = self.session.get(Ingredient, ingredient_id)
            if not ingredient:
                return Err(LedgerError.not_found('Ingredient', ingredient_id))
            if ingredient.is_prepared:
                return Err(LedgerError.conflict(
                    f'{ingredient.name} is prepared; its cost is derived from production',
                    ingredient_id=ingredient.id))
            ingredient.cost_per_unit = parsed.value
            return Ok(ingredient)

        result = self.uow.run(work, operation='catalog.set_raw_cost')
        if result.ok:
            self.log_operation('catalog.set_raw_cost', {'ingredient_id': ingredient_id, 'cost': str(parsed.value)})
        return result

    def set_prepared_flag(self, ingredient_id, is_prepared: bool, cost=None) -> Result[Ingredient]:
        """Switching to prepared derives the cost from batches; back to raw needs a cost."""
        parsed = None
        if not is_prepared:
            if cost is None:
                return Err(LedgerError.invalid_quantity('A cost is required when marking an ingredient raw'))
            parsed = parse_cost(cost, scale=self.settings.cost_scale)
            if not parsed.ok:
                return parsed

        def work():
            ingredient = self.session.get(Ingredient, ingredient_id)
            if not ingredient:
                return Err(LedgerError.not_found('Ingredient', ingredient_id))
            ingredient.is_prepared = bool(is_prepared)
            if is_prepared:
                ingredient.cost_per_unit = ZERO
                self.session.flush()
                recalculate_average_cost(self.session, self.settings, ingredient)
            else:
                ingredient.cost_per_unit = parsed.value
            return Ok(ingredient)

        result = self.uow.run(work, operation='catalog.set_prepared_flag')
        if result.ok:
            self.log_operation('catalog.set_prepared_flag', {
                'ingredient_id': ingredient_id, 'is_prepared': bool(is_prepared),
            })
        return result

    def delete_ingredient(self, ingredient_id) -> Result[int]:
        def work():
            ingredient = self.session.get(Ingredient, ingredient_id)
            if not ingredient:
                return Err(LedgerError.not_found('Ingredient', ingredient_id))
            references = ingredient_references(self.session, ingredient_id)
            in_use = {name: count for name, count in references.items() if count}
            if in_use:
                return Err(LedgerError.conflict(
                    f'{ingredient.name} is still referenced and cannot be deleted',
                    ingredient_id=ingredient_id, references=in_use))
            self.session.delete(ingredient)
            return Ok(ingredient_id)

        result = self.uow.run(work, operation='catalog.delete_ingredient')
        if result.ok:
            self.log_operation('catalog.delete_ingredient', {'ingredient_id': ingredient_id})
        else:
            self.log_failure('catalog.delete_ingredient', result.error)
        return result

    def validate_prep_recipe(self, recipe: PrepRecipe) -> Result[PrepRecipe]:
        return validate_prep_recipe(self.session, recipe)
