from naijaauto.extensions import db
from naijaauto.store import records
from naijaauto.store.records import as_utc, utcnow


class ModerationReview(db.Model):
    __tablename__ = "moderation_reviews"

    id = db.Column(db.String(36), primary_key=True)
    listing_id = db.Column(db.String(36), db.ForeignKey("listings.id"), nullable=False, index=True)
    moderator_id = db.Column(db.String(64), nullable=False)
    action = db.Column(db.String(16), nullable=False)  # approve | reject
    reason = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_record(self) -> records.ModerationReview:
        return records.ModerationReview(
            id=self.id,
            listing_id=self.listing_id,
            moderator_id=self.moderator_id,
            action=self.action,
            reason=self.reason,
            created_at=as_utc(self.created_at),
        )
