from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .types import UnitCost


class Ingredient(db.Model):
    """Raw or prepared ingredient with its running weighted-average cost.

    ``cost_per_unit`` of a prepared ingredient is derived from its holdings and
    is only written by the stock ledger.
    """
    __tablename__ = 'ingredient'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    unit = db.Column(db.String(32), nullable=False)
    is_prepared = db.Column(db.Boolean, nullable=False, default=False)
    cost_per_unit = db.Column(UnitCost(), nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    holdings = db.relationship('StockHolding', back_populates='ingredient')

    __table_args__ = (
        db.CheckConstraint('cost_per_unit >= 0', name='check_ingredient_cost_non_negative'),
    )

    def __repr__(self):
        return f'<Ingredient {self.id}: {self.name} ({self.unit})>'
