from naijaauto.extensions import db
from naijaauto.store import records
from naijaauto.store.records import as_utc, utcnow


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(64), primary_key=True)
    role = db.Column(db.String(24), nullable=False, default="buyer")
    seller_type = db.Column(db.String(16), nullable=True)  # dealer | private
    phone_verified = db.Column(db.Boolean, nullable=False, default=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_record(self) -> records.User:
        return records.User(
            id=self.id,
            role=self.role,
            seller_type=self.seller_type,
            phone_verified=bool(self.phone_verified),
            email=self.email,
            phone=self.phone,
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


class SellerProfile(db.Model):
    __tablename__ = "seller_profiles"

    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), primary_key=True)
    full_name = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(40), nullable=False)
    city = db.Column(db.String(50), nullable=False)
    bio = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_record(self) -> records.SellerProfile:
        return records.SellerProfile(
            user_id=self.user_id,
            full_name=self.full_name,
            state=self.state,
            city=self.city,
            bio=self.bio,
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


class DealerProfile(db.Model):
    __tablename__ = "dealer_profiles"

    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), primary_key=True)
    business_name = db.Column(db.String(120), nullable=False)
    cac_number = db.Column(db.String(80), nullable=True)
    address = db.Column(db.String(200), nullable=True)
    verified = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_record(self) -> records.DealerProfile:
        return records.DealerProfile(
            user_id=self.user_id,
            business_name=self.business_name,
            cac_number=self.cac_number,
            address=self.address,
            verified=bool(self.verified),
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )
