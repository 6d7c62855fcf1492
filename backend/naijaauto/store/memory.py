from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime
from typing import Callable

from naijaauto.services.integrity import count_overlap, normalize_vin
from naijaauto.store.records import (
    PAYMENT_FAILED,
    PAYMENT_PAID,
    STATUS_PENDING_REVIEW,
    VIN_RELEASED_STATUSES,
    AuditLog,
    DealerProfile,
    DuplicateImageSignal,
    Favorite,
    FeaturedPackage,
    Listing,
    ListingContactEvent,
    Location,
    ModerationReview,
    Notification,
    OtpVerification,
    PaymentTransaction,
    SellerProfile,
    User,
    utcnow,
)
from naijaauto.store.repository import Repository, StoreConflictError


_LISTING_FIELDS = set(Listing.__dataclass_fields__.keys()) - {"id", "seller_id", "created_at"}
_PACKAGE_FIELDS = {"name", "duration_days", "amount_ngn", "is_active"}


def _new_id() -> str:
    return str(uuid.uuid4())


def _copy(value):
    return copy.deepcopy(value)


class InMemoryRepository(Repository):
    """Process-local store used for tests and single-process development.

    Every read and write holds one re-entrant lock, so the uniqueness rules
    hold and iteration is safe under concurrent request threads.
    """

    name = "memory"

    def __init__(self, *, clock: Callable[[], datetime] | None = None):
        self._clock = clock or utcnow
        self._lock = threading.RLock()
        self._locations: list[Location] = []
        self._users: dict[str, User] = {}
        self._seller_profiles: dict[str, SellerProfile] = {}
        self._dealer_profiles: dict[str, DealerProfile] = {}
        self._otps: list[OtpVerification] = []
        self._listings: dict[str, Listing] = {}
        self._reviews: list[ModerationReview] = []
        self._favorites: list[Favorite] = []
        self._contact_events: list[ListingContactEvent] = []
        self._packages: dict[str, FeaturedPackage] = {}
        self._payments: dict[str, PaymentTransaction] = {}
        self._notifications: list[Notification] = []
        self._audit_logs: list[AuditLog] = []

    # locations
    def seed_locations(self, locations: list[Location]) -> int:
        with self._lock:
            known = {(loc.state, loc.city) for loc in self._locations}
            added = 0
            for loc in locations:
                if (loc.state, loc.city) in known:
                    continue
                self._locations.append(_copy(loc))
                known.add((loc.state, loc.city))
                added += 1
            return added

    def list_locations(self) -> list[Location]:
        with self._lock:
            return [_copy(loc) for loc in self._locations]

    # users and profiles
    def upsert_user(self, *, user_id, role, seller_type=None, phone_verified=False, email=None, phone=None) -> User:
        with self._lock:
            now = self._clock()
            user = self._users.get(user_id)
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
                self._users[user_id] = user
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
            return _copy(user)

    def get_user_by_id(self, user_id):
        with self._lock:
            user = self._users.get(user_id)
            return _copy(user) if user else None

    def set_user_seller_type(self, user_id, seller_type):
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            user.seller_type = seller_type
            user.updated_at = self._clock()
            return _copy(user)

    def mark_phone_verified(self, user_id, phone):
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            user.phone_verified = True
            user.phone = phone
            user.updated_at = self._clock()
            return _copy(user)

    def get_seller_profile(self, user_id):
        with self._lock:
            profile = self._seller_profiles.get(user_id)
            return _copy(profile) if profile else None

    def upsert_seller_profile(self, *, user_id, full_name, state, city, bio=None):
        with self._lock:
            now = self._clock()
            existing = self._seller_profiles.get(user_id)
            profile = SellerProfile(
                user_id=user_id,
                full_name=full_name,
                state=state,
                city=city,
                bio=bio,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
            self._seller_profiles[user_id] = profile
            return _copy(profile)

    def get_dealer_profile(self, user_id):
        with self._lock:
            profile = self._dealer_profiles.get(user_id)
            return _copy(profile) if profile else None

    def upsert_dealer_profile(self, *, user_id, business_name, cac_number=None, address=None):
        with self._lock:
            now = self._clock()
            existing = self._dealer_profiles.get(user_id)
            profile = DealerProfile(
                user_id=user_id,
                business_name=business_name,
                cac_number=cac_number,
                address=address,
                verified=existing.verified if existing else False,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
            self._dealer_profiles[user_id] = profile
            return _copy(profile)

    def delete_dealer_profile(self, user_id):
        with self._lock:
            return self._dealer_profiles.pop(user_id, None) is not None

    # otp
    def create_otp(self, *, user_id, phone, code_hash, expires_at, max_attempts):
        with self._lock:
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
            self._otps.append(otp)
            return _copy(otp)

    def get_latest_otp(self, user_id, phone):
        with self._lock:
            latest = None
            for otp in self._otps:
                if otp.user_id != user_id or otp.phone != phone:
                    continue
                if latest is None or otp.created_at >= latest.created_at:
                    latest = otp
            return _copy(latest) if latest else None

    def _find_otp(self, otp_id):
        for otp in self._otps:
            if otp.id == otp_id:
                return otp
        return None

    def increment_otp_attempts(self, otp_id):
        with self._lock:
            otp = self._find_otp(otp_id)
            if otp is None:
                return None
            otp.attempts = int(otp.attempts or 0) + 1
            return _copy(otp)

    def mark_otp_verified(self, otp_id):
        with self._lock:
            otp = self._find_otp(otp_id)
            if otp is None:
                return None
            otp.verified_at = self._clock()
            return _copy(otp)

    # listings
    def _check_listing_uniques(self, listing: Listing) -> None:
        vin = normalize_vin(listing.vin)
        for other in self._listings.values():
            if other.id == listing.id:
                continue
            if other.slug == listing.slug:
                raise StoreConflictError("listing_slug")
            if (
                vin
                and listing.status not in VIN_RELEASED_STATUSES
                and other.status not in VIN_RELEASED_STATUSES
                and normalize_vin(other.vin) == vin
            ):
                raise StoreConflictError("listing_vin")

    def create_listing(self, listing):
        with self._lock:
            now = self._clock()
            stored = _copy(listing)
            stored.id = stored.id or _new_id()
            stored.created_at = stored.created_at or now
            stored.updated_at = now
            self._check_listing_uniques(stored)
            self._listings[stored.id] = stored
            return _copy(stored)

    def update_listing(self, listing_id, changes):
        unknown = set(changes) - _LISTING_FIELDS
        if unknown:
            raise ValueError(f"unknown listing fields: {sorted(unknown)}")
        with self._lock:
            current = self._listings.get(listing_id)
            if current is None:
                return None
            updated = _copy(current)
            for key, value in changes.items():
                setattr(updated, key, _copy(value))
            updated.updated_at = self._clock()
            self._check_listing_uniques(updated)
            self._listings[listing_id] = updated
            return _copy(updated)

    def get_listing_by_id(self, listing_id):
        with self._lock:
            listing = self._listings.get(listing_id)
            return _copy(listing) if listing else None

    def get_listing_by_slug(self, slug):
        with self._lock:
            for listing in self._listings.values():
                if listing.slug == slug:
                    return _copy(listing)
            return None

    def list_listings_by_status(self, status):
        with self._lock:
            return [_copy(item) for item in self._listings.values() if item.status == status]

    def list_seller_listings(self, seller_id):
        with self._lock:
            rows = [item for item in self._listings.values() if item.seller_id == seller_id]
            rows.sort(key=lambda item: item.created_at, reverse=True)
            return [_copy(item) for item in rows]

    def slug_exists(self, slug, exclude_listing_id=None):
        with self._lock:
            return any(
                item.slug == slug and item.id != exclude_listing_id
                for item in self._listings.values()
            )

    def has_duplicate_vin(self, vin, exclude_listing_id=None):
        with self._lock:
            wanted = normalize_vin(vin)
            if not wanted:
                return False
            for item in self._listings.values():
                if item.id == exclude_listing_id or item.status in VIN_RELEASED_STATUSES:
                    continue
                if normalize_vin(item.vin) == wanted:
                    return True
            return False

    def detect_duplicate_image_hashes(self, hashes, exclude_listing_id=None):
        with self._lock:
            wanted = set(hashes or [])
            if not wanted:
                return DuplicateImageSignal()
            photos_by_listing = {
                item.id: list(item.photos)
                for item in self._listings.values()
                if item.id != exclude_listing_id
            }
            return count_overlap(wanted, photos_by_listing)

    # moderation
    def add_moderation_review(self, *, listing_id, moderator_id, action, reason=None):
        with self._lock:
            review = ModerationReview(
                id=_new_id(),
                listing_id=listing_id,
                moderator_id=moderator_id,
                action=action,
                reason=reason,
                created_at=self._clock(),
            )
            self._reviews.append(review)
            return _copy(review)

    def get_moderation_queue(self):
        with self._lock:
            rows = [item for item in self._listings.values() if item.status == STATUS_PENDING_REVIEW]
            rows.sort(key=lambda item: item.created_at)
            return [_copy(item) for item in rows]

    def list_moderation_reviews_since(self, since):
        with self._lock:
            rows = [review for review in self._reviews if review.created_at >= since]
            rows.sort(key=lambda review: review.created_at)
            return [_copy(review) for review in rows]

    # favorites and contact events
    def add_favorite(self, user_id, listing_id):
        with self._lock:
            for fav in self._favorites:
                if fav.user_id == user_id and fav.listing_id == listing_id:
                    return _copy(fav)
            fav = Favorite(user_id=user_id, listing_id=listing_id, created_at=self._clock())
            self._favorites.append(fav)
            return _copy(fav)

    def remove_favorite(self, user_id, listing_id):
        with self._lock:
            before = len(self._favorites)
            self._favorites = [
                fav for fav in self._favorites
                if not (fav.user_id == user_id and fav.listing_id == listing_id)
            ]
            return len(self._favorites) != before

    def list_favorites_by_user(self, user_id):
        with self._lock:
            rows = [fav for fav in self._favorites if fav.user_id == user_id]
            rows.sort(key=lambda fav: fav.created_at, reverse=True)
            return [_copy(fav) for fav in rows]

    def add_contact_event(self, *, listing_id, channel, user_id=None, ip=None, user_agent=None):
        with self._lock:
            event = ListingContactEvent(
                id=_new_id(),
                listing_id=listing_id,
                channel=channel,
                user_id=user_id,
                ip=ip,
                user_agent=user_agent,
                created_at=self._clock(),
            )
            self._contact_events.append(event)
            return _copy(event)

    def list_contact_events_since(self, listing_ids, since):
        with self._lock:
            wanted = set(listing_ids or [])
            return [
                _copy(event)
                for event in self._contact_events
                if event.listing_id in wanted and event.created_at >= since
            ]

    # featured packages and payments
    def create_featured_package(self, *, code, name, duration_days, amount_ngn, is_active=True):
        with self._lock:
            if code in self._packages:
                raise StoreConflictError("featured_package_code")
            pkg = FeaturedPackage(
                id=_new_id(),
                code=code,
                name=name,
                duration_days=int(duration_days),
                amount_ngn=int(amount_ngn),
                is_active=bool(is_active),
                created_at=self._clock(),
            )
            self._packages[code] = pkg
            return _copy(pkg)

    def list_featured_packages(self, include_inactive=False):
        with self._lock:
            rows = [pkg for pkg in self._packages.values() if include_inactive or pkg.is_active]
            rows.sort(key=lambda pkg: (pkg.duration_days, pkg.code))
            return [_copy(pkg) for pkg in rows]

    def get_featured_package_by_code(self, code, include_inactive=False):
        with self._lock:
            pkg = self._packages.get(code)
            if pkg is None or (not include_inactive and not pkg.is_active):
                return None
            return _copy(pkg)

    def update_featured_package(self, code, changes):
        unknown = set(changes) - _PACKAGE_FIELDS
        if unknown:
            raise ValueError(f"unknown featured package fields: {sorted(unknown)}")
        with self._lock:
            pkg = self._packages.get(code)
            if pkg is None:
                return None
            for key, value in changes.items():
                setattr(pkg, key, value)
            return _copy(pkg)

    def create_payment_transaction(self, txn):
        with self._lock:
            stored = _copy(txn)
            stored.id = stored.id or _new_id()
            stored.created_at = stored.created_at or self._clock()
            if stored.reference in self._payments:
                raise StoreConflictError("payment_reference")
            self._payments[stored.reference] = stored
            return _copy(stored)

    def get_payment_by_reference(self, reference):
        with self._lock:
            txn = self._payments.get(reference)
            return _copy(txn) if txn else None

    def get_payment_by_webhook_event_id(self, event_id):
        with self._lock:
            for txn in self._payments.values():
                if txn.webhook_event_id and txn.webhook_event_id == event_id:
                    return _copy(txn)
            return None

    def mark_payment_paid(self, *, reference, webhook_event_id, provider_transaction_id, paid_at):
        with self._lock:
            txn = self._payments.get(reference)
            if txn is None:
                return None
            for other in self._payments.values():
                if other.reference != reference and other.webhook_event_id == webhook_event_id:
                    raise StoreConflictError("payment_webhook_event")
            if txn.status == PAYMENT_PAID:
                raise StoreConflictError("payment_webhook_event")
            txn.status = PAYMENT_PAID
            txn.webhook_event_id = webhook_event_id
            txn.provider_transaction_id = provider_transaction_id
            txn.paid_at = paid_at
            return _copy(txn)

    def mark_payment_failed(self, reference):
        with self._lock:
            txn = self._payments.get(reference)
            if txn is None:
                return None
            if txn.status != PAYMENT_PAID:
                txn.status = PAYMENT_FAILED
            return _copy(txn)

    # notifications and audit
    def add_notification(self, *, user_id, title, body):
        with self._lock:
            item = Notification(id=_new_id(), user_id=user_id, title=title, body=body, created_at=self._clock())
            self._notifications.append(item)
            return _copy(item)

    def list_notifications_by_user(self, user_id):
        with self._lock:
            rows = [item for item in self._notifications if item.user_id == user_id]
            rows.reverse()
            rows.sort(key=lambda item: item.created_at, reverse=True)
            return [_copy(item) for item in rows]

    def add_audit_log(self, *, action, entity_type, entity_id, actor_user_id=None, metadata=None):
        with self._lock:
            entry = AuditLog(
                id=_new_id(),
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                actor_user_id=actor_user_id,
                metadata=dict(metadata or {}),
                created_at=self._clock(),
            )
            self._audit_logs.append(entry)
            return _copy(entry)

    def list_audit_logs(self, entity_id=None):
        with self._lock:
            return [
                _copy(entry)
                for entry in self._audit_logs
                if entity_id is None or entry.entity_id == entity_id
            ]
