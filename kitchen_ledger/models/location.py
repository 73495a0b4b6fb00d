from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class LocationKind:
    STORAGE = 'STORAGE'
    FREEZER = 'FREEZER'
    SHELF = 'SHELF'
    WORKSTATION = 'WORKSTATION'
    WORKSTATION_STORAGE = 'WORKSTATION_STORAGE'
    BUFFET = 'BUFFET'

    # Kinds that can carry stock holdings and feed a prep station.
    STOCK_BEARING = (STORAGE, FREEZER, SHELF, WORKSTATION, WORKSTATION_STORAGE)
    ALL = STOCK_BEARING + (BUFFET,)


class PrepStation(db.Model):
    """A kitchen or bar station where products are prepared."""
    __tablename__ = 'prep_station'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)

    locations = db.relationship('Location', back_populates='prep_station')

    def __repr__(self):
        return f'<PrepStation {self.id}: {self.name}>'


class Location(db.Model):
    """Where stock physically sits. Floor-plan semantics live outside the ledger."""
    __tablename__ = 'location'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    kind = db.Column(db.String(32), nullable=False, default=LocationKind.STORAGE)
    prep_station_id = db.Column(db.Integer, db.ForeignKey('prep_station.id'), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    prep_station = db.relationship('PrepStation', back_populates='locations')

    @property
    def is_stock_bearing(self):
        return self.kind in LocationKind.STOCK_BEARING

    def __repr__(self):
        return f'<Location {self.id}: {self.name} ({self.kind})>'
