import json

from naijaauto.extensions import db
from naijaauto.store import records
from naijaauto.store.records import as_utc, utcnow


_LIVE_VIN_CLAUSE = "status NOT IN ('rejected', 'archived')"


class Listing(db.Model):
    __tablename__ = "listings"
    __table_args__ = (
        # A VIN may be held by at most one listing that is not rejected or archived.
        db.Index(
            "uq_listings_live_vin",
            "vin",
            unique=True,
            sqlite_where=db.text(_LIVE_VIN_CLAUSE),
            postgresql_where=db.text(_LIVE_VIN_CLAUSE),
        ),
    )

    id = db.Column(db.String(36), primary_key=True)
    seller_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    seller_type = db.Column(db.String(16), nullable=False, default="private")
    status = db.Column(db.String(24), nullable=False, default="draft", index=True)

    title = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=False)
    price_ngn = db.Column(db.BigInteger, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    make = db.Column(db.String(50), nullable=False)
    model = db.Column(db.String(50), nullable=False)
    body_type = db.Column(db.String(16), nullable=False)
    mileage_km = db.Column(db.Integer, nullable=False)
    transmission = db.Column(db.String(16), nullable=False)
    fuel_type = db.Column(db.String(16), nullable=False)
    vin = db.Column(db.String(17), nullable=False)
    state = db.Column(db.String(40), nullable=False)
    city = db.Column(db.String(50), nullable=False)
    lat = db.Column(db.Float, nullable=False)
    lng = db.Column(db.Float, nullable=False)
    photos_json = db.Column(db.Text, nullable=False, default="[]")
    contact_phone = db.Column(db.String(20), nullable=True)
    contact_whatsapp = db.Column(db.String(20), nullable=True)

    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    featured_until = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    slug = db.Column(db.String(200), nullable=False, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def photos(self) -> list:
        try:
            data = json.loads(self.photos_json or "[]")
        except ValueError:
            return []
        return [str(item) for item in data] if isinstance(data, list) else []

    def set_photos(self, photos) -> None:
        self.photos_json = json.dumps(list(photos or []), separators=(",", ":"))

    def to_record(self) -> records.Listing:
        return records.Listing(
            id=self.id,
            seller_id=self.seller_id,
            seller_type=self.seller_type,
            status=self.status,
            title=self.title,
            description=self.description,
            price_ngn=int(self.price_ngn),
            year=int(self.year),
            make=self.make,
            model=self.model,
            body_type=self.body_type,
            mileage_km=int(self.mileage_km),
            transmission=self.transmission,
            fuel_type=self.fuel_type,
            vin=self.vin,
            state=self.state,
            city=self.city,
            lat=float(self.lat),
            lng=float(self.lng),
            photos=self.photos(),
            contact_phone=self.contact_phone,
            contact_whatsapp=self.contact_whatsapp,
            is_featured=bool(self.is_featured),
            featured_until=as_utc(self.featured_until),
            approved_at=as_utc(self.approved_at),
            slug=self.slug,
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


class ListingPhotoHash(db.Model):
    __tablename__ = "listing_photo_hashes"

    id = db.Column(db.Integer, primary_key=True)
    listing_id = db.Column(db.String(36), db.ForeignKey("listings.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    photo_hash = db.Column(db.String(64), nullable=False, index=True)


class ListingContactEvent(db.Model):
    __tablename__ = "listing_contact_events"

    id = db.Column(db.String(36), primary_key=True)
    listing_id = db.Column(db.String(36), db.ForeignKey("listings.id"), nullable=False, index=True)
    channel = db.Column(db.String(16), nullable=False)
    user_id = db.Column(db.String(64), nullable=True)
    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_record(self) -> records.ListingContactEvent:
        return records.ListingContactEvent(
            id=self.id,
            listing_id=self.listing_id,
            channel=self.channel,
            user_id=self.user_id,
            ip=self.ip,
            user_agent=self.user_agent,
            created_at=as_utc(self.created_at),
        )


class Favorite(db.Model):
    __tablename__ = "favorites"

    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), primary_key=True)
    listing_id = db.Column(db.String(36), db.ForeignKey("listings.id"), primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_record(self) -> records.Favorite:
        return records.Favorite(user_id=self.user_id, listing_id=self.listing_id, created_at=as_utc(self.created_at))
