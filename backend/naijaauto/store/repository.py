from __future__ import annotations

from datetime import datetime

from naijaauto.store.records import (
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
)


class StoreConflictError(RuntimeError):
    """A write violated a uniqueness rule enforced by the store itself.

    ``constraint`` names the rule: ``listing_vin``, ``listing_slug`` or
    ``payment_webhook_event``.
    """

    def __init__(self, constraint: str, message: str = ""):
        super().__init__(message or f"STORE_CONFLICT:{constraint}")
        self.constraint = constraint


class Repository:
    """Storage contract shared by the in-memory and SQL stores.

    Every method is a single, independently committed operation. Uniqueness of
    live VINs, slugs and webhook event ids is enforced on write and reported
    as :class:`StoreConflictError`.
    """

    name = "unknown"

    # locations
    def seed_locations(self, locations: list[Location]) -> int:
        raise NotImplementedError

    def list_locations(self) -> list[Location]:
        raise NotImplementedError

    # users and profiles
    def upsert_user(
        self,
        *,
        user_id: str,
        role: str,
        seller_type: str | None = None,
        phone_verified: bool = False,
        email: str | None = None,
        phone: str | None = None,
    ) -> User:
        raise NotImplementedError

    def get_user_by_id(self, user_id: str) -> User | None:
        raise NotImplementedError

    def set_user_seller_type(self, user_id: str, seller_type: str) -> User | None:
        raise NotImplementedError

    def mark_phone_verified(self, user_id: str, phone: str) -> User | None:
        raise NotImplementedError

    def get_seller_profile(self, user_id: str) -> SellerProfile | None:
        raise NotImplementedError

    def upsert_seller_profile(self, *, user_id: str, full_name: str, state: str, city: str, bio: str | None = None) -> SellerProfile:
        raise NotImplementedError

    def get_dealer_profile(self, user_id: str) -> DealerProfile | None:
        raise NotImplementedError

    def upsert_dealer_profile(
        self,
        *,
        user_id: str,
        business_name: str,
        cac_number: str | None = None,
        address: str | None = None,
    ) -> DealerProfile:
        raise NotImplementedError

    def delete_dealer_profile(self, user_id: str) -> bool:
        raise NotImplementedError

    # otp
    def create_otp(self, *, user_id: str, phone: str, code_hash: str, expires_at: datetime, max_attempts: int) -> OtpVerification:
        raise NotImplementedError

    def get_latest_otp(self, user_id: str, phone: str) -> OtpVerification | None:
        raise NotImplementedError

    def increment_otp_attempts(self, otp_id: str) -> OtpVerification | None:
        raise NotImplementedError

    def mark_otp_verified(self, otp_id: str) -> OtpVerification | None:
        raise NotImplementedError

    # listings
    def create_listing(self, listing: Listing) -> Listing:
        raise NotImplementedError

    def update_listing(self, listing_id: str, changes: dict) -> Listing | None:
        raise NotImplementedError

    def get_listing_by_id(self, listing_id: str) -> Listing | None:
        raise NotImplementedError

    def get_listing_by_slug(self, slug: str) -> Listing | None:
        raise NotImplementedError

    def list_listings_by_status(self, status: str) -> list[Listing]:
        raise NotImplementedError

    def list_seller_listings(self, seller_id: str) -> list[Listing]:
        raise NotImplementedError

    def slug_exists(self, slug: str, exclude_listing_id: str | None = None) -> bool:
        raise NotImplementedError

    def has_duplicate_vin(self, vin: str, exclude_listing_id: str | None = None) -> bool:
        raise NotImplementedError

    def detect_duplicate_image_hashes(self, hashes: list[str], exclude_listing_id: str | None = None) -> DuplicateImageSignal:
        raise NotImplementedError

    # moderation
    def add_moderation_review(self, *, listing_id: str, moderator_id: str, action: str, reason: str | None = None) -> ModerationReview:
        raise NotImplementedError

    def get_moderation_queue(self) -> list[Listing]:
        raise NotImplementedError

    def list_moderation_reviews_since(self, since: datetime) -> list[ModerationReview]:
        raise NotImplementedError

    # favorites and contact events
    def add_favorite(self, user_id: str, listing_id: str) -> Favorite:
        raise NotImplementedError

    def remove_favorite(self, user_id: str, listing_id: str) -> bool:
        raise NotImplementedError

    def list_favorites_by_user(self, user_id: str) -> list[Favorite]:
        raise NotImplementedError

    def add_contact_event(
        self,
        *,
        listing_id: str,
        channel: str,
        user_id: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> ListingContactEvent:
        raise NotImplementedError

    def list_contact_events_since(self, listing_ids: list[str], since: datetime) -> list[ListingContactEvent]:
        raise NotImplementedError

    # featured packages and payments
    def create_featured_package(self, *, code: str, name: str, duration_days: int, amount_ngn: int, is_active: bool = True) -> FeaturedPackage:
        raise NotImplementedError

    def list_featured_packages(self, include_inactive: bool = False) -> list[FeaturedPackage]:
        raise NotImplementedError

    def get_featured_package_by_code(self, code: str, include_inactive: bool = False) -> FeaturedPackage | None:
        raise NotImplementedError

    def update_featured_package(self, code: str, changes: dict) -> FeaturedPackage | None:
        raise NotImplementedError

    def create_payment_transaction(self, txn: PaymentTransaction) -> PaymentTransaction:
        raise NotImplementedError

    def get_payment_by_reference(self, reference: str) -> PaymentTransaction | None:
        raise NotImplementedError

    def get_payment_by_webhook_event_id(self, event_id: str) -> PaymentTransaction | None:
        raise NotImplementedError

    def mark_payment_paid(
        self,
        *,
        reference: str,
        webhook_event_id: str,
        provider_transaction_id: str | None,
        paid_at: datetime,
    ) -> PaymentTransaction | None:
        raise NotImplementedError

    def mark_payment_failed(self, reference: str) -> PaymentTransaction | None:
        raise NotImplementedError

    # notifications and audit
    def add_notification(self, *, user_id: str, title: str, body: str) -> Notification:
        raise NotImplementedError

    def list_notifications_by_user(self, user_id: str) -> list[Notification]:
        raise NotImplementedError

    def add_audit_log(
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: str,
        actor_user_id: str | None = None,
        metadata: dict | None = None,
    ) -> AuditLog:
        raise NotImplementedError

    def list_audit_logs(self, entity_id: str | None = None) -> list[AuditLog]:
        raise NotImplementedError
