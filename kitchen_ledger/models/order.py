from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .types import Money


class VisitStatus:
    ACTIVE = 'ACTIVE'
    CLOSED = 'CLOSED'


class Visit(db.Model):
    """A client's stay; orders accumulate into its running total."""
    __tablename__ = 'visit'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, nullable=True, index=True)
    status = db.Column(db.String(16), nullable=False, default=VisitStatus.ACTIVE)
    total_spent = db.Column(Money(), nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    orders = db.relationship('Order', back_populates='visit')

    @property
    def is_active(self):
        return self.status == VisitStatus.ACTIVE


class Order(db.Model):
    __tablename__ = 'order'

    id = db.Column(db.Integer, primary_key=True)
    visit_id = db.Column(db.Integer, db.ForeignKey('visit.id'), nullable=False, index=True)
    client_id = db.Column(db.Integer, nullable=True)
    total = db.Column(Money(), nullable=False, default=0)
    status = db.Column(db.String(32), nullable=False, default='PENDING')
    handled_by_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    visit = db.relationship('Visit', back_populates='orders')
    handled_by = db.relationship('User')
    items = db.relationship('OrderItem', back_populates='order', cascade='all, delete-orphan',
                            order_by='OrderItem.id')

    def __repr__(self):
        return f'<Order {self.id}: visit={self.visit_id} total={self.total}>'


class OrderItem(db.Model):
    """Line item; unit price is the product price at the time of sale."""
    __tablename__ = 'order_item'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('order.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(Money(), nullable=False)
    total_price = db.Column(Money(), nullable=False)
    prep_station_id = db.Column(db.Integer, db.ForeignKey('prep_station.id'), nullable=True)

    order = db.relationship('Order', back_populates='items')
    product = db.relationship('Product')

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='check_order_item_quantity_positive'),
    )
