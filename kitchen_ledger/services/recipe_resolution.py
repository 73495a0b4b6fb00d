"""
Recipe Resolution

Pure expansion of product carts and prep runs into ingredient requirements.
Nothing here mutates the session.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from ..models import Location, LocationKind, PrepRecipe, Product
from ..utils.decimal_utils import ZERO, quantize
from .errors import LedgerError
from .result import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass
class CartExpansion:
    # (ingredient_id, location_id) -> total required quantity
    requirements: Dict[Tuple[int, int], Decimal] = field(default_factory=OrderedDict)
    untracked_product_ids: List[int] = field(default_factory=list)

    def locations_for(self, ingredient_id) -> set:
        return {loc for ing, loc in self.requirements if ing == ingredient_id}

    def totals_by_ingredient(self) -> Dict[int, Decimal]:
        totals: Dict[int, Decimal] = {}
        for (ingredient_id, _), quantity in self.requirements.items():
            totals[ingredient_id] = totals.get(ingredient_id, ZERO) + quantity
        return totals


@dataclass(frozen=True)
class PrepRunExpansion:
    prep_recipe_id: int
    output_ingredient_id: int
    target_quantity: Decimal
    runs: Decimal
    # (ingredient_id, required quantity) in recipe order
    inputs: Tuple[Tuple[int, Decimal], ...]


def resolve_station_location(session, prep_station_id) -> Result[Location]:
    """A prep station must map to exactly one stock-bearing location."""
    if prep_station_id is None:
        return Err(LedgerError.missing_station_location(None))
    locations = (
        session.query(Location)
        .filter(Location.prep_station_id == prep_station_id,
                Location.kind.in_(LocationKind.STOCK_BEARING))
        .order_by(Location.id)
        .all()
    )
    if len(locations) != 1:
        return Err(LedgerError.missing_station_location(prep_station_id, len(locations)))
    return Ok(locations[0])


def expand_product_cart(session, items: Iterable[Tuple[int, int]], *, scale: int = 6) -> Result[CartExpansion]:
    """
    Multiply each product's recipe by its cart quantity and bucket the result
    by the stock location of the product's prep station.

    Products without recipe lines are sold untracked and only logged.
    """
    expansion = CartExpansion()
    station_locations: Dict[int, int] = {}

    for product_id, quantity in items:
        product = session.get(Product, product_id)
        if not product:
            return Err(LedgerError.not_found('Product', product_id))

        if not product.recipe_items:
            logger.warning(f"RECIPE: product {product.id} ({product.name}) has no recipe; sold without stock tracking")
            expansion.untracked_product_ids.append(product.id)
            continue

        location_id = station_locations.get(product.prep_station_id)
        if location_id is None:
            resolved = resolve_station_location(session, product.prep_station_id)
            if not resolved.ok:
                return resolved
            location_id = resolved.value.id
            station_locations[product.prep_station_id] = location_id

        for item in product.recipe_items:
            key = (item.ingredient_id, location_id)
            required = quantize(item.quantity * quantity, scale)
            expansion.requirements[key] = expansion.requirements.get(key, ZERO) + required

    return Ok(expansion)


def scale_prep_recipe(recipe: PrepRecipe, target_output_quantity: Decimal, *, scale: int = 6) -> PrepRunExpansion:
    """runs = target / yield; fractional runs scale inputs linearly."""
    runs = target_output_quantity / recipe.output_quantity
    inputs = tuple(
        (line.ingredient_id, quantize(line.quantity * runs, scale))
        for line in recipe.inputs
    )
    return PrepRunExpansion(
        prep_recipe_id=recipe.id,
        output_ingredient_id=recipe.output_ingredient_id,
        target_quantity=target_output_quantity,
        runs=runs,
        inputs=inputs,
    )


def expand_prep_run(session, prep_recipe_id, target_output_quantity: Decimal, *, scale: int = 6) -> Result[PrepRunExpansion]:
    recipe = session.get(PrepRecipe, prep_recipe_id)
    if not recipe:
        return Err(LedgerError.not_found('PrepRecipe', prep_recipe_id))
    if recipe.output_quantity is None or recipe.output_quantity <= ZERO:
        return Err(LedgerError.missing_configuration(
            f'Prep recipe {recipe.name} has no positive output quantity', prep_recipe_id=recipe.id))
    if target_output_quantity is None or target_output_quantity < ZERO:
        return Err(LedgerError.invalid_quantity('Target output quantity cannot be negative',
                                                value=str(target_output_quantity)))
    return Ok(scale_prep_recipe(recipe, target_output_quantity, scale=scale))
