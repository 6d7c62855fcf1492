from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Callable

from sqlalchemy.exc import IntegrityError

from naijaauto.extensions import db
from naijaauto.models import (
    AuditLog,
    DealerProfile,
    Favorite,
    FeaturedPackage,
    Listing,
    ListingContactEvent,
    ListingPhotoHash,
    Location,
    ModerationReview,
    Notification,
    OtpVerification,
    PaymentTransaction,
    SellerProfile,
    User,
)
from naijaauto.services.integrity import normalize_vin, photo_fingerprints
from naijaauto.store import records
from naijaauto.store.records import PAYMENT_FAILED, PAYMENT_PAID, STATUS_PENDING_REVIEW, VIN_RELEASED_STATUSES, utcnow
from naijaauto.store.repository import Repository, StoreConflictError


_LISTING_COLUMNS = {
    "seller_type", "status", "title", "description", "price_ngn", "year", "make", "model",
    "body_type", "mileage_km", "transmission", "fuel_type", "vin", "state", "city", "lat", "lng",
    "contact_phone", "contact_whatsapp", "is_featured", "featured_until", "approved_at", "slug",
}
_PACKAGE_COLUMNS = {"name", "duration_days", "amount_ngn", "is_active"}


def _new_id() -> str:
    return str(uuid.uuid4())


_UNIQUE_MARKERS = ("unique constraint", "duplicate key")
_UNIQUE_CONSTRAINTS = (
    (("listings.vin", "uq_listings_live_vin"), "listing_vin"),
    (("listings.slug", "listings_slug_key"), "listing_slug"),
    (("payment_transactions.webhook_event_id", "payment_transactions_webhook_event_id_key"), "payment_webhook_event"),
    (("payment_transactions.reference", "payment_transactions_reference_key"), "payment_reference"),
    (("featured_packages.code", "featured_packages_code_key"), "featured_package_code"),
)


def _constraint_from_error(error: IntegrityError) -> str | None:
    """Name the unique rule behind ``error``; None for NOT NULL, FK and unknown failures."""
    msg = str(getattr(error, "orig", error) or "").lower()
    if not any(marker in msg for marker in _UNIQUE_MARKERS):
        return None
    for names, constraint in _UNIQUE_CONSTRAINTS:
        if any(name in msg for name in names):
            return constraint
    return None


class SqlRepository(Repository):
    """Flask-SQLAlchemy backed store. Needs an active application context.

    Uniqueness of live VINs, slugs and webhook event ids is enforced by the
    schema; violations roll back the session and raise StoreConflictError.
    """

    name = "sql"

    def __init__(self, *, clock: Callable[[], datetime] | None = None):
        self._clock = clock or utcnow

    def _commit(self) -> None:
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            constraint = _constraint_from_error(e)
            if constraint is None:
                raise
            raise StoreConflictError(constraint, str(getattr(e, "orig", e))) from e
        except Exception:
            db.session.rollback()
            raise

    # locations
    def seed_locations(self, locations):
        existing = {(row.state, row.city) for row in Location.query.all()}
        added = 0
        for loc in locations:
            if (loc.state, loc.city) in existing:
                continue
            db.session.add(Location(state=loc.state, city=loc.city, lat=loc.lat, lng=loc.lng))
            existing.add((loc.state, loc.city))
            added += 1
        self._commit()
        return added

    def list_locations(self):
        return [row.to_record() for row in Location.query.order_by(Location.id.asc()).all()]

    # users and profiles
    def upsert_user(self, *, user_id, role, seller_type=None, phone_verified=False, email=None, phone=None):
        now = self._clock()
        user = db.session.get(User, user_id)
        if user is None:
            user = User(
                id=user_id,
                role=role,
                seller_type=seller_type,
                phone_verified=bool(phone_verified),
                email=email,
                phone=phone,
                created_at=now,
                updated_at=now,
            )
            db.session.add(user)
        else:
            user.role = role
            if seller_type:
                user.seller_type = seller_type
            user.phone_verified = bool(user.phone_verified or phone_verified)
            if email:
                user.email = email
            if phone:
                user.phone = phone
            user.updated_at = now
        self._commit()
        return user.to_record()

    def get_user_by_id(self, user_id):
        user = db.session.get(User, user_id)
        return user.to_record() if user else None

    def set_user_seller_type(self, user_id, seller_type):
        user = db.session.get(User, user_id)
        if user is None:
            return None
        user.seller_type = seller_type
        user.updated_at = self._clock()
        self._commit()
        return user.to_record()

    def mark_phone_verified(self, user_id, phone):
        user = db.session.get(User, user_id)
        if user is None:
            return None
        user.phone_verified = True
        user.phone = phone
        user.updated_at = self._clock()
        self._commit()
        return user.to_record()

    def get_seller_profile(self, user_id):
        profile = db.session.get(SellerProfile, user_id)
        return profile.to_record() if profile else None

    def upsert_seller_profile(self, *, user_id, full_name, state, city, bio=None):
        now = self._clock()
        profile = db.session.get(SellerProfile, user_id)
        if profile is None:
            profile = SellerProfile(user_id=user_id, created_at=now)
            db.session.add(profile)
        profile.full_name = full_name
        profile.state = state
        profile.city = city
        profile.bio = bio
        profile.updated_at = now
        self._commit()
        return profile.to_record()

    def get_dealer_profile(self, user_id):
        profile = db.session.get(DealerProfile, user_id)
        return profile.to_record() if profile else None

    def upsert_dealer_profile(self, *, user_id, business_name, cac_number=None, address=None):
        now = self._clock()
        profile = db.session.get(DealerProfile, user_id)
        if profile is None:
            profile = DealerProfile(user_id=user_id, verified=False, created_at=now)
            db.session.add(profile)
        profile.business_name = business_name
        profile.cac_number = cac_number
        profile.address = address
        profile.updated_at = now
        self._commit()
        return profile.to_record()

    def delete_dealer_profile(self, user_id):
        profile = db.session.get(DealerProfile, user_id)
        if profile is None:
            return False
        db.session.delete(profile)
        self._commit()
        return True

    # otp
    def create_otp(self, *, user_id, phone, code_hash, expires_at, max_attempts):
        otp = OtpVerification(
            id=_new_id(),
            user_id=user_id,
            phone=phone,
            code_hash=code_hash,
            expires_at=expires_at,
            attempts=0,
            max_attempts=int(max_attempts),
            created_at=self._clock(),
        )
        db.session.add(otp)
        self._commit()
        return otp.to_record()

    def get_latest_otp(self, user_id, phone):
        otp = (
            OtpVerification.query
            .filter_by(user_id=user_id, phone=phone)
            .order_by(OtpVerification.created_at.desc())
            .first()
        )
        return otp.to_record() if otp else None

    def increment_otp_attempts(self, otp_id):
        updated = (
            OtpVerification.query
            .filter_by(id=otp_id)
            .update({OtpVerification.attempts: OtpVerification.attempts + 1}, synchronize_session=False)
        )
        self._commit()
        if not updated:
            return None
        otp = db.session.get(OtpVerification, otp_id, populate_existing=True)
        return otp.to_record() if otp else None

    def mark_otp_verified(self, otp_id):
        otp = db.session.get(OtpVerification, otp_id)
        if otp is None:
            return None
        otp.verified_at = self._clock()
        self._commit()
        return otp.to_record()

    # listings
    def _replace_photo_hashes(self, listing_id: str, photos) -> None:
        ListingPhotoHash.query.filter_by(listing_id=listing_id).delete(synchronize_session=False)
        for position, photo_hash in enumerate(photo_fingerprints(photos)):
            db.session.add(ListingPhotoHash(listing_id=listing_id, position=position, photo_hash=photo_hash))

    def create_listing(self, listing):
        now = self._clock()
        row = Listing(
            id=listing.id or _new_id(),
            seller_id=listing.seller_id,
            created_at=listing.created_at or now,
            updated_at=now,
        )
        for key in _LISTING_COLUMNS:
            setattr(row, key, getattr(listing, key))
        row.vin = normalize_vin(listing.vin)
        row.set_photos(listing.photos)
        db.session.add(row)
        for position, photo_hash in enumerate(photo_fingerprints(listing.photos)):
            db.session.add(ListingPhotoHash(listing_id=row.id, position=position, photo_hash=photo_hash))
        self._commit()
        return row.to_record()

    def update_listing(self, listing_id, changes):
        unknown = set(changes) - _LISTING_COLUMNS - {"photos"}
        if unknown:
            raise ValueError(f"unknown listing fields: {sorted(unknown)}")
        row = db.session.get(Listing, listing_id)
        if row is None:
            return None
        if "photos" in changes:
            # Runs a DELETE, so it goes before any pending attribute changes.
            self._replace_photo_hashes(row.id, changes["photos"])
            row.set_photos(changes["photos"])
        for key, value in changes.items():
            if key == "photos":
                continue
            if key == "vin":
                row.vin = normalize_vin(value)
            else:
                setattr(row, key, value)
        row.updated_at = self._clock()
        self._commit()
        return row.to_record()

    def get_listing_by_id(self, listing_id):
        row = db.session.get(Listing, listing_id)
        return row.to_record() if row else None

    def get_listing_by_slug(self, slug):
        row = Listing.query.filter_by(slug=slug).first()
        return row.to_record() if row else None

    def list_listings_by_status(self, status):
        return [row.to_record() for row in Listing.query.filter_by(status=status).all()]

    def list_seller_listings(self, seller_id):
        rows = Listing.query.filter_by(seller_id=seller_id).order_by(Listing.created_at.desc()).all()
        return [row.to_record() for row in rows]

    def slug_exists(self, slug, exclude_listing_id=None):
        q = Listing.query.filter(Listing.slug == slug)
        if exclude_listing_id:
            q = q.filter(Listing.id != exclude_listing_id)
        return db.session.query(q.exists()).scalar()

    def has_duplicate_vin(self, vin, exclude_listing_id=None):
        wanted = normalize_vin(vin)
        if not wanted:
            return False
        q = Listing.query.filter(Listing.vin == wanted, Listing.status.not_in(VIN_RELEASED_STATUSES))
        if exclude_listing_id:
            q = q.filter(Listing.id != exclude_listing_id)
        return db.session.query(q.exists()).scalar()

    def detect_duplicate_image_hashes(self, hashes, exclude_listing_id=None):
        wanted = sorted(set(hashes or []))
        if not wanted:
            return records.DuplicateImageSignal()
        q = ListingPhotoHash.query.filter(ListingPhotoHash.photo_hash.in_(wanted))
        if exclude_listing_id:
            q = q.filter(ListingPhotoHash.listing_id != exclude_listing_id)
        rows = q.order_by(ListingPhotoHash.id.asc()).all()
        listing_ids: list[str] = []
        for row in rows:
            if row.listing_id not in listing_ids:
                listing_ids.append(row.listing_id)
        return records.DuplicateImageSignal(overlap_count=len(rows), listing_ids=listing_ids)

    # moderation
    def add_moderation_review(self, *, listing_id, moderator_id, action, reason=None):
        review = ModerationReview(
            id=_new_id(),
            listing_id=listing_id,
            moderator_id=moderator_id,
            action=action,
            reason=reason,
            created_at=self._clock(),
        )
        db.session.add(review)
        self._commit()
        return review.to_record()

    def get_moderation_queue(self):
        rows = Listing.query.filter_by(status=STATUS_PENDING_REVIEW).order_by(Listing.created_at.asc()).all()
        return [row.to_record() for row in rows]

    def list_moderation_reviews_since(self, since):
        rows = (
            ModerationReview.query
            .filter(ModerationReview.created_at >= since)
            .order_by(ModerationReview.created_at.asc())
            .all()
        )
        return [row.to_record() for row in rows]

    # favorites and contact events
    def add_favorite(self, user_id, listing_id):
        fav = db.session.get(Favorite, (user_id, listing_id))
        if fav is None:
            fav = Favorite(user_id=user_id, listing_id=listing_id, created_at=self._clock())
            db.session.add(fav)
            try:
                self._commit()
            except StoreConflictError:
                fav = db.session.get(Favorite, (user_id, listing_id))
                if fav is None:
                    raise
        return fav.to_record()

    def remove_favorite(self, user_id, listing_id):
        removed = Favorite.query.filter_by(user_id=user_id, listing_id=listing_id).delete(synchronize_session=False)
        self._commit()
        return bool(removed)

    def list_favorites_by_user(self, user_id):
        rows = Favorite.query.filter_by(user_id=user_id).order_by(Favorite.created_at.desc()).all()
        return [row.to_record() for row in rows]

    def add_contact_event(self, *, listing_id, channel, user_id=None, ip=None, user_agent=None):
        event = ListingContactEvent(
            id=_new_id(),
            listing_id=listing_id,
            channel=channel,
            user_id=user_id,
            ip=ip,
            user_agent=user_agent,
            created_at=self._clock(),
        )
        db.session.add(event)
        self._commit()
        return event.to_record()

    def list_contact_events_since(self, listing_ids, since):
        if not listing_ids:
            return []
        rows = (
            ListingContactEvent.query
            .filter(ListingContactEvent.listing_id.in_(list(listing_ids)), ListingContactEvent.created_at >= since)
            .all()
        )
        return [row.to_record() for row in rows]

    # featured packages and payments
    def create_featured_package(self, *, code, name, duration_days, amount_ngn, is_active=True):
        pkg = FeaturedPackage(
            id=_new_id(),
            code=code,
            name=name,
            duration_days=int(duration_days),
            amount_ngn=int(amount_ngn),
            is_active=bool(is_active),
            created_at=self._clock(),
        )
        db.session.add(pkg)
        self._commit()
        return pkg.to_record()

    def list_featured_packages(self, include_inactive=False):
        q = FeaturedPackage.query
        if not include_inactive:
            q = q.filter(FeaturedPackage.is_active.is_(True))
        rows = q.order_by(FeaturedPackage.duration_days.asc(), FeaturedPackage.code.asc()).all()
        return [row.to_record() for row in rows]

    def get_featured_package_by_code(self, code, include_inactive=False):
        pkg = FeaturedPackage.query.filter_by(code=code).first()
        if pkg is None or (not include_inactive and not pkg.is_active):
            return None
        return pkg.to_record()

    def update_featured_package(self, code, changes):
        unknown = set(changes) - _PACKAGE_COLUMNS
        if unknown:
            raise ValueError(f"unknown featured package fields: {sorted(unknown)}")
        pkg = FeaturedPackage.query.filter_by(code=code).first()
        if pkg is None:
            return None
        for key, value in changes.items():
            setattr(pkg, key, value)
        self._commit()
        return pkg.to_record()

    def create_payment_transaction(self, txn):
        row = PaymentTransaction(
            id=txn.id or _new_id(),
            listing_id=txn.listing_id,
            seller_id=txn.seller_id,
            package_code=txn.package_code,
            amount_ngn=int(txn.amount_ngn),
            provider=txn.provider,
            reference=txn.reference,
            status=txn.status,
            webhook_event_id=txn.webhook_event_id,
            provider_transaction_id=txn.provider_transaction_id,
            created_at=txn.created_at or self._clock(),
            paid_at=txn.paid_at,
        )
        db.session.add(row)
        self._commit()
        return row.to_record()

    def get_payment_by_reference(self, reference):
        row = PaymentTransaction.query.filter_by(reference=reference).first()
        return row.to_record() if row else None

    def get_payment_by_webhook_event_id(self, event_id):
        row = PaymentTransaction.query.filter_by(webhook_event_id=event_id).first()
        return row.to_record() if row else None

    def mark_payment_paid(self, *, reference, webhook_event_id, provider_transaction_id, paid_at):
        row = PaymentTransaction.query.filter_by(reference=reference).first()
        if row is None:
            return None
        # Conditional update: only an unpaid row transitions, once.
        try:
            updated = (
                PaymentTransaction.query
                .filter(PaymentTransaction.reference == reference, PaymentTransaction.status != PAYMENT_PAID)
                .update(
                    {
                        PaymentTransaction.status: PAYMENT_PAID,
                        PaymentTransaction.webhook_event_id: webhook_event_id,
                        PaymentTransaction.provider_transaction_id: provider_transaction_id,
                        PaymentTransaction.paid_at: paid_at,
                    },
                    synchronize_session=False,
                )
            )
        except IntegrityError as e:
            db.session.rollback()
            if _constraint_from_error(e) != "payment_webhook_event":
                raise
            raise StoreConflictError("payment_webhook_event", str(getattr(e, "orig", e))) from e
        self._commit()
        if not updated:
            raise StoreConflictError("payment_webhook_event")
        row = db.session.get(PaymentTransaction, row.id, populate_existing=True)
        return row.to_record()

    def mark_payment_failed(self, reference):
        row = PaymentTransaction.query.filter_by(reference=reference).first()
        if row is None:
            return None
        if row.status != PAYMENT_PAID:
            row.status = PAYMENT_FAILED
            self._commit()
        return row.to_record()

    # notifications and audit
    def add_notification(self, *, user_id, title, body):
        item = Notification(id=_new_id(), user_id=user_id, title=title, body=body, created_at=self._clock())
        db.session.add(item)
        self._commit()
        return item.to_record()

    def list_notifications_by_user(self, user_id):
        rows = Notification.query.filter_by(user_id=user_id).order_by(Notification.created_at.desc()).all()
        return [row.to_record() for row in rows]

    def add_audit_log(self, *, action, entity_type, entity_id, actor_user_id=None, metadata=None):
        entry = AuditLog(
            id=_new_id(),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            meta=json.dumps(metadata or {}, separators=(",", ":"), default=str),
            created_at=self._clock(),
        )
        db.session.add(entry)
        self._commit()
        return entry.to_record()

    def list_audit_logs(self, entity_id=None):
        q = AuditLog.query
        if entity_id is not None:
            q = q.filter_by(entity_id=entity_id)
        return [row.to_record() for row in q.order_by(AuditLog.created_at.asc()).all()]
