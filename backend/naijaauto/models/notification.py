import json

from naijaauto.extensions import db
from naijaauto.store import records
from naijaauto.store.records import as_utc, utcnow


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.String(36), primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    title = db.Column(db.String(160), nullable=False)
    body = db.Column(db.Text, nullable=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_record(self) -> records.Notification:
        return records.Notification(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            body=self.body,
            read_at=as_utc(self.read_at),
            created_at=as_utc(self.created_at),
        )


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.String(36), primary_key=True)
    actor_user_id = db.Column(db.String(64), nullable=True)
    entity_type = db.Column(db.String(40), nullable=False)
    entity_id = db.Column(db.String(80), nullable=False, index=True)
    action = db.Column(db.String(80), nullable=False)
    meta = db.Column(db.Text, nullable=True)  # JSON string

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def meta_dict(self) -> dict:
        raw = (self.meta or "").strip()
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def to_record(self) -> records.AuditLog:
        return records.AuditLog(
            id=self.id,
            actor_user_id=self.actor_user_id,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            action=self.action,
            metadata=self.meta_dict(),
            created_at=as_utc(self.created_at),
        )
