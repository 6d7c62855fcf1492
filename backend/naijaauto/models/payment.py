from naijaauto.extensions import db
from naijaauto.store import records
from naijaauto.store.records import as_utc, utcnow


class FeaturedPackage(db.Model):
    __tablename__ = "featured_packages"

    id = db.Column(db.String(36), primary_key=True)
    code = db.Column(db.String(30), nullable=False, unique=True)
    name = db.Column(db.String(100), nullable=False)
    duration_days = db.Column(db.Integer, nullable=False)
    amount_ngn = db.Column(db.BigInteger, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_record(self) -> records.FeaturedPackage:
        return records.FeaturedPackage(
            id=self.id,
            code=self.code,
            name=self.name,
            duration_days=int(self.duration_days),
            amount_ngn=int(self.amount_ngn),
            is_active=bool(self.is_active),
            created_at=as_utc(self.created_at),
        )


class PaymentTransaction(db.Model):
    __tablename__ = "payment_transactions"

    id = db.Column(db.String(36), primary_key=True)
    listing_id = db.Column(db.String(36), db.ForeignKey("listings.id"), nullable=False, index=True)
    seller_id = db.Column(db.String(64), nullable=False, index=True)
    package_code = db.Column(db.String(30), nullable=False)
    amount_ngn = db.Column(db.BigInteger, nullable=False)
    provider = db.Column(db.String(32), nullable=False, default="paystack")
    reference = db.Column(db.String(80), nullable=False, unique=True)
    status = db.Column(db.String(16), nullable=False, default="initiated")  # initiated | paid | failed
    # Provider event id of the delivery that settled this transaction.
    webhook_event_id = db.Column(db.String(128), nullable=True, unique=True)
    provider_transaction_id = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_record(self) -> records.PaymentTransaction:
        return records.PaymentTransaction(
            id=self.id,
            listing_id=self.listing_id,
            seller_id=self.seller_id,
            package_code=self.package_code,
            amount_ngn=int(self.amount_ngn),
            provider=self.provider,
            reference=self.reference,
            status=self.status,
            webhook_event_id=self.webhook_event_id,
            provider_transaction_id=self.provider_transaction_id,
            created_at=as_utc(self.created_at),
            paid_at=as_utc(self.paid_at),
        )
