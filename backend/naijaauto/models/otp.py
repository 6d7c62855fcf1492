from naijaauto.extensions import db
from naijaauto.store import records
from naijaauto.store.records import as_utc, utcnow


class OtpVerification(db.Model):
    __tablename__ = "otp_verifications"

    id = db.Column(db.String(36), primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=False, index=True)
    code_hash = db.Column(db.String(64), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    max_attempts = db.Column(db.Integer, nullable=False, default=5)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_record(self) -> records.OtpVerification:
        return records.OtpVerification(
            id=self.id,
            user_id=self.user_id,
            phone=self.phone,
            code_hash=self.code_hash,
            expires_at=as_utc(self.expires_at),
            attempts=int(self.attempts or 0),
            max_attempts=int(self.max_attempts or 0),
            verified_at=as_utc(self.verified_at),
            created_at=as_utc(self.created_at),
        )
