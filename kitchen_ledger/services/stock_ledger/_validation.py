import logging
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import func

from ...models import Ingredient, StockHolding
from ...utils.decimal_utils import decimal_or_zero
from ._costing import live_holdings, weighted_average_cost

logger = logging.getLogger(__name__)


def available_quantity(session, ingredient_id, location_id=None) -> Decimal:
    query = session.query(func.coalesce(func.sum(StockHolding.quantity), 0)).filter(
        StockHolding.ingredient_id == ingredient_id
    )
    if location_id is not None:
        query = query.filter(StockHolding.location_id == location_id)
    return decimal_or_zero(query.scalar())


def validate_stock_integrity(session, settings) -> List[Dict]:
    """
    Read-only scan of the ledger.

    Reports holdings below zero and prepared ingredients whose stored average
    cost no longer matches their remaining batches.
    """
    findings = []

    negative = session.query(StockHolding).filter(StockHolding.quantity < 0).all()
    for holding in negative:
        findings.append({
            'check': 'negative_holding',
            'holding_id': holding.id,
            'ingredient_id': holding.ingredient_id,
            'location_id': holding.location_id,
            'quantity': holding.quantity,
        })

    prepared = session.query(Ingredient).filter(Ingredient.is_prepared.is_(True)).all()
    for ingredient in prepared:
        stored = decimal_or_zero(ingredient.cost_per_unit)
        expected = weighted_average_cost(live_holdings(session, ingredient.id), stored, settings.cost_scale)
        if expected != stored:
            findings.append({
                'check': 'average_cost_drift',
                'ingredient_id': ingredient.id,
                'ingredient_name': ingredient.name,
                'stored': stored,
                'expected': expected,
            })

    if findings:
        logger.warning(f"INTEGRITY: {len(findings)} finding(s) in stock ledger")
    else:
        logger.info("INTEGRITY: stock ledger consistent")
    return findings
