from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from naijaauto.config import Settings
from naijaauto.integrations.mail.base import Mailer
from naijaauto.integrations.mail.factory import build_mailer
from naijaauto.integrations.messaging.base import MessagingProvider
from naijaauto.integrations.messaging.factory import build_messaging_provider
from naijaauto.integrations.payments.base import PaymentsProvider
from naijaauto.integrations.payments.factory import build_payments_provider
from naijaauto.services.common import RequestUser, ServiceContext
from naijaauto.services.listing_service import ListingService
from naijaauto.services.moderation_service import ModerationService
from naijaauto.services.otp_service import PhoneVerificationService
from naijaauto.services.payment_service import FeaturedPaymentService
from naijaauto.services.seller_service import SellerService
from naijaauto.store.records import utcnow
from naijaauto.store.repository import Repository


@dataclass
class MarketplaceService:
    """Single entry point the HTTP layer talks to.

    Each method takes the caller (``RequestUser`` or ``None`` for public reads)
    and an untyped payload, validates it and delegates to the owning service.
    """

    repo: Repository
    sms: MessagingProvider
    payments: PaymentsProvider
    mailer: Mailer
    settings: Settings = field(default_factory=Settings)
    clock: Callable[[], datetime] = utcnow

    def __post_init__(self):
        self.ctx = ServiceContext(repo=self.repo, clock=self.clock)
        self.listings = ListingService(self.ctx)
        self.moderation = ModerationService(self.ctx)
        self.sellers = SellerService(self.ctx)
        self.phone = PhoneVerificationService(
            self.ctx,
            self.sms,
            ttl_minutes=self.settings.otp_ttl_minutes,
            max_attempts=self.settings.otp_max_attempts,
            expose_debug_code=not self.settings.is_production,
        )
        self.featured = FeaturedPaymentService(
            self.ctx,
            self.payments,
            self.mailer,
            app_url=self.settings.app_url,
        )

    # phone verification
    def send_phone_otp(self, user: RequestUser | None, payload) -> dict:
        return self.phone.send_phone_otp(user, payload)

    def verify_phone_otp(self, user: RequestUser | None, payload) -> dict:
        return self.phone.verify_phone_otp(user, payload)

    # seller onboarding
    def get_seller_onboarding(self, user: RequestUser | None) -> dict:
        return self.sellers.get_seller_onboarding(user)

    def upsert_seller_onboarding(self, user: RequestUser | None, payload) -> dict:
        return self.sellers.upsert_seller_onboarding(user, payload)

    def get_seller_dashboard(self, user: RequestUser | None) -> dict:
        return self.sellers.get_seller_dashboard(user)

    # listings
    def create_listing(self, user: RequestUser | None, payload) -> dict:
        return self.listings.create_listing(user, payload)

    def update_listing(self, user: RequestUser | None, identifier: str, payload) -> dict:
        return self.listings.update_listing(user, identifier, payload)

    def submit_listing(self, user: RequestUser | None, identifier: str) -> dict:
        return self.listings.submit_listing(user, identifier)

    def search_listings(self, payload) -> dict:
        return self.listings.search_listings(payload)

    def get_public_listing(self, identifier: str) -> dict:
        return self.listings.get_public_listing(identifier)

    def track_contact_click(self, user: RequestUser | None, identifier: str, payload, *, ip=None, user_agent=None) -> dict:
        return self.listings.track_contact_click(user, identifier, payload, ip=ip, user_agent=user_agent)

    def add_favorite(self, user: RequestUser | None, listing_id: str) -> dict:
        return self.listings.add_favorite(user, listing_id)

    def remove_favorite(self, user: RequestUser | None, listing_id: str) -> dict:
        return self.listings.remove_favorite(user, listing_id)

    def list_favorites(self, user: RequestUser | None) -> dict:
        return self.listings.list_favorites(user)

    def list_locations(self) -> dict:
        return self.listings.list_locations()

    # moderation
    def approve_listing(self, user: RequestUser | None, identifier: str, payload=None) -> dict:
        return self.moderation.approve_listing(user, identifier, payload)

    def reject_listing(self, user: RequestUser | None, identifier: str, payload=None) -> dict:
        return self.moderation.reject_listing(user, identifier, payload)

    def get_moderation_queue(self, user: RequestUser | None) -> dict:
        return self.moderation.get_moderation_queue(user)

    def get_moderation_sla_dashboard(self, user: RequestUser | None) -> dict:
        return self.moderation.get_moderation_sla_dashboard(user)

    # featured placement
    def list_featured_packages(self) -> dict:
        return self.featured.list_featured_packages()

    def list_featured_packages_for_admin(self, user: RequestUser | None) -> dict:
        return self.featured.list_featured_packages_for_admin(user)

    def update_featured_package_for_admin(self, user: RequestUser | None, code: str, payload) -> dict:
        return self.featured.update_featured_package_for_admin(user, code, payload)

    def create_featured_checkout(self, user: RequestUser | None, payload) -> dict:
        return self.featured.create_featured_checkout(user, payload)

    def handle_paystack_webhook(self, raw_body: bytes | str, signature: str | None) -> dict:
        return self.featured.handle_paystack_webhook(raw_body, signature)


def build_marketplace_service(settings: Settings, repo: Repository, **overrides) -> MarketplaceService:
    """Wire providers from settings; ``overrides`` replace sms/payments/mailer/clock."""
    return MarketplaceService(
        repo=repo,
        sms=overrides.get("sms") or build_messaging_provider(settings),
        payments=overrides.get("payments") or build_payments_provider(settings),
        mailer=overrides.get("mailer") or build_mailer(settings),
        settings=settings,
        clock=overrides.get("clock") or utcnow,
    )
