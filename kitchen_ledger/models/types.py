from ..extensions import db

# Quantities and weights (grams, ml, units) and per-unit costs share one precision.
QUANTITY_PRECISION = 18
QUANTITY_SCALE = 6

# Consumed-cost totals are sums of quantity * unit cost, so they need the
# quantity scale plus the cost scale to be stored without rounding.
COST_VALUE_PRECISION = 30
COST_VALUE_SCALE = 12


def Quantity():
    return db.Numeric(QUANTITY_PRECISION, QUANTITY_SCALE, asdecimal=True)


def UnitCost():
    return db.Numeric(QUANTITY_PRECISION, QUANTITY_SCALE, asdecimal=True)


def CostValue():
    """Extended cost of stock actually consumed (waste, prep inputs, pan contents)."""
    return db.Numeric(COST_VALUE_PRECISION, COST_VALUE_SCALE, asdecimal=True)


def Money():
    """Prices and totals captured at sale time."""
    return db.Numeric(14, 2, asdecimal=True)
