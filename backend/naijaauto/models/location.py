from naijaauto.extensions import db
from naijaauto.store import records


class Location(db.Model):
    __tablename__ = "locations"
    __table_args__ = (db.UniqueConstraint("state", "city", name="uq_locations_state_city"),)

    id = db.Column(db.Integer, primary_key=True)
    state = db.Column(db.String(40), nullable=False)
    city = db.Column(db.String(50), nullable=False)
    lat = db.Column(db.Float, nullable=False)
    lng = db.Column(db.Float, nullable=False)

    def to_record(self) -> records.Location:
        return records.Location(state=self.state, city=self.city, lat=float(self.lat), lng=float(self.lng))
