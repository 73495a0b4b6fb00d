from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .types import CostValue, Quantity


class PrepTaskStatus:
    PENDING = 'PENDING'
    ASSIGNED = 'ASSIGNED'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'

    ALL = (PENDING, ASSIGNED, IN_PROGRESS, COMPLETED, CANCELLED)


class PrepTask(db.Model):
    """One production run of a prep recipe at a location."""
    __tablename__ = 'prep_task'

    id = db.Column(db.Integer, primary_key=True)
    prep_recipe_id = db.Column(db.Integer, db.ForeignKey('prep_recipe.id'), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=False)
    target_quantity = db.Column(Quantity(), nullable=False)
    status = db.Column(db.String(32), nullable=False, default=PrepTaskStatus.PENDING, index=True)
    notes = db.Column(db.Text, nullable=True)

    assigned_to_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True, index=True)
    executed_by_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    quantity_run = db.Column(Quantity(), nullable=True)
    # Total FIFO cost of the inputs consumed by the completed run
    input_cost = db.Column(CostValue(), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    prep_recipe = db.relationship('PrepRecipe')
    location = db.relationship('Location')
    assigned_to = db.relationship('User', foreign_keys=[assigned_to_user_id])
    executed_by = db.relationship('User', foreign_keys=[executed_by_id])

    __table_args__ = (
        db.CheckConstraint('target_quantity > 0', name='check_prep_task_target_positive'),
    )

    def __repr__(self):
        return f'<PrepTask {self.id}: recipe={self.prep_recipe_id} {self.status}>'
