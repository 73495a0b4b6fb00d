from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .types import CostValue, Quantity


class WasteReason:
    EXPIRED = 'EXPIRED'
    SPOILED = 'SPOILED'
    DROPPED = 'DROPPED'
    BURNT = 'BURNT'
    CONTAMINATED = 'CONTAMINATED'
    OVERCOOKED = 'OVERCOOKED'
    ERROR = 'ERROR'
    THEFT = 'THEFT'
    CLIENT_RETURN = 'CLIENT_RETURN'
    OTHER = 'OTHER'

    ALL = (EXPIRED, SPOILED, DROPPED, BURNT, CONTAMINATED, OVERCOOKED, ERROR, THEFT, CLIENT_RETURN, OTHER)


class WasteRecord(db.Model):
    """Stock written off, valued at the cost of the batches it came from."""
    __tablename__ = 'waste_record'

    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=True, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=True)
    pan_shipment_id = db.Column(db.Integer, db.ForeignKey('pan_shipment.id'), nullable=True)
    quantity = db.Column(Quantity(), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    reason = db.Column(db.String(32), nullable=False)
    cost_value = db.Column(CostValue(), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    # Set when the measured quantity was clamped (scale or process anomaly)
    is_anomaly = db.Column(db.Boolean, nullable=False, default=False)
    recorded_by_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    ingredient = db.relationship('Ingredient')
    recorded_by = db.relationship('User')
    pan_shipment = db.relationship('PanShipment', back_populates='waste_records')

    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='check_waste_quantity_non_negative'),
    )

    def __repr__(self):
        return f'<WasteRecord {self.id}: {self.quantity} {self.unit} ({self.reason})>'
