from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class Role:
    OWNER = 'OWNER'
    MANAGER = 'MANAGER'
    COOK = 'COOK'
    BARTENDER = 'BARTENDER'
    CASHIER = 'CASHIER'
    SERVER = 'SERVER'
    DRIVER = 'DRIVER'

    ALL = (OWNER, MANAGER, COOK, BARTENDER, CASHIER, SERVER, DRIVER)


class User(db.Model):
    """Staff member as seen by the ledger: identity and role only."""
    __tablename__ = 'user'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=True, unique=True)
    role = db.Column(db.String(32), nullable=False, default=Role.COOK)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    def __repr__(self):
        return f'<User {self.id}: {self.name} ({self.role})>'
