from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .types import CostValue, Quantity


class PanStatus:
    AVAILABLE = 'AVAILABLE'
    IN_USE = 'IN_USE'
    RETURNED_DIRTY = 'RETURNED_DIRTY'


class DeliveryStatus:
    PLANNED = 'PLANNED'
    PENDING = 'PENDING'
    READY_FOR_DISPATCH = 'READY_FOR_DISPATCH'
    OUT_FOR_DELIVERY = 'OUT_FOR_DELIVERY'
    RETURNED = 'RETURNED'

    DISPATCHABLE = (PLANNED, PENDING, READY_FOR_DISPATCH)


class PanModel(db.Model):
    __tablename__ = 'pan_model'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    capacity_l = db.Column(Quantity(), nullable=True)
    tare_weight_g = db.Column(Quantity(), nullable=True)


class ServingPan(db.Model):
    """A buffet pan holding one ingredient; contents are already out of stock."""
    __tablename__ = 'serving_pan'

    id = db.Column(db.Integer, primary_key=True)
    unique_identifier = db.Column(db.String(64), nullable=False, unique=True)
    pan_model_id = db.Column(db.Integer, db.ForeignKey('pan_model.id'), nullable=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=True)
    location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=True)
    current_quantity = db.Column(Quantity(), nullable=False, default=0)
    capacity = db.Column(Quantity(), nullable=True)
    # FIFO cost of what is currently in the pan
    content_cost_value = db.Column(CostValue(), nullable=False, default=0)
    status = db.Column(db.String(32), nullable=False, default=PanStatus.AVAILABLE)

    pan_model = db.relationship('PanModel')
    ingredient = db.relationship('Ingredient')
    location = db.relationship('Location')

    def __repr__(self):
        return f'<ServingPan {self.id}: {self.unique_identifier} {self.current_quantity}>'


class Delivery(db.Model):
    __tablename__ = 'delivery'

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(32), nullable=False, default=DeliveryStatus.PENDING)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    shipments = db.relationship('PanShipment', back_populates='delivery')


class PanShipment(db.Model):
    """A pan sent out with a delivery, weighed on the way out and back."""
    __tablename__ = 'pan_shipment'

    id = db.Column(db.Integer, primary_key=True)
    delivery_id = db.Column(db.Integer, db.ForeignKey('delivery.id'), nullable=False, index=True)
    serving_pan_id = db.Column(db.Integer, db.ForeignKey('serving_pan.id'), nullable=False)
    recipe_guess = db.Column(db.String(128), nullable=True)
    out_weight_grams = db.Column(Quantity(), nullable=False)
    in_weight_grams = db.Column(Quantity(), nullable=True)
    calculated_waste_grams = db.Column(Quantity(), nullable=True)
    # Gross return weight minus tare
    net_returned_grams = db.Column(Quantity(), nullable=True)
    weight_anomaly = db.Column(db.Boolean, nullable=False, default=False)
    out_timestamp = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)
    in_timestamp = db.Column(db.DateTime(timezone=True), nullable=True)

    delivery = db.relationship('Delivery', back_populates='shipments')
    serving_pan = db.relationship('ServingPan')
    waste_records = db.relationship('WasteRecord', back_populates='pan_shipment')

    @property
    def is_returned(self):
        return self.in_timestamp is not None
