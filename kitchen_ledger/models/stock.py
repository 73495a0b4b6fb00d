from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .types import Quantity, UnitCost


class StockHolding(db.Model):
    """
    A batch of one ingredient sitting at one location.
    Several holdings may exist per (ingredient, location) so each keeps its own
    cost and age for FIFO consumption and valuation. Exhausted holdings stay.
    """
    __tablename__ = 'stock_holding'

    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=False)

    quantity = db.Column(Quantity(), nullable=False, default=0)
    cost_at_acquisition = db.Column(UnitCost(), nullable=True)

    acquired_at = db.Column(db.DateTime(timezone=True), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    # FIFO key
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    # Optimistic concurrency: concurrent writers to the same batch cannot both commit.
    version_id = db.Column(db.Integer, nullable=False, default=1)

    ingredient = db.relationship('Ingredient', back_populates='holdings')
    location = db.relationship('Location')

    __mapper_args__ = {'version_id_col': version_id}

    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='check_holding_quantity_non_negative'),
        db.Index('ix_stock_holding_ingredient_location', 'ingredient_id', 'location_id', 'created_at'),
    )

    def effective_unit_cost(self, fallback):
        """Batch cost, or the ingredient's average when the batch has none."""
        if self.cost_at_acquisition is not None:
            return self.cost_at_acquisition
        return fallback

    @property
    def is_exhausted(self):
        return self.quantity <= 0

    def __repr__(self):
        return f'<StockHolding {self.id}: ingredient={self.ingredient_id} location={self.location_id} qty={self.quantity}>'
