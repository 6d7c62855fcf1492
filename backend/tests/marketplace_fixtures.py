"""Shared builders for the marketplace test suites."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from naijaauto.config import Settings
from naijaauto.integrations.mail.base import Mailer, MailResult
from naijaauto.integrations.messaging.mock_provider import MockMessagingProvider
from naijaauto.integrations.payments.mock_provider import MockPaymentsProvider
from naijaauto.services.common import RequestUser
from naijaauto.services.marketplace import MarketplaceService
from naijaauto.store.memory import InMemoryRepository
from naijaauto.store.seed import seed_marketplace


COROLLA_VIN = "JTDBR32E530056781"
BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingMailer(Mailer):
    name = "recording"

    def __init__(self, fail: bool = False):
        self.sent: list[dict] = []
        self.fail = fail

    def send(self, *, to: str, subject: str, html: str) -> MailResult:
        if self.fail:
            raise RuntimeError("mail transport down")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return MailResult(ok=True, provider=self.name, message_id=f"rec-{len(self.sent)}")


def vin_for(n: int) -> str:
    return f"JTDBR32E5300{n:05d}"


def photo_urls(prefix: str, count: int = 15) -> list[str]:
    return [f"https://cdn.naijaauto.test/{prefix}/photo-{i}.jpg" for i in range(count)]


def listing_payload(**overrides) -> dict:
    payload = {
        "title": "Toyota Corolla 2015 LE",
        "description": "Clean Lagos-used Corolla with full service history and new tyres.",
        "price_ngn": 8_500_000,
        "year": 2015,
        "make": "Toyota",
        "model": "Corolla",
        "body_type": "car",
        "mileage_km": 84000,
        "transmission": "automatic",
        "fuel_type": "petrol",
        "vin": COROLLA_VIN,
        "state": "Lagos",
        "city": "Ikeja",
        "lat": 6.6018,
        "lng": 3.3515,
        "photos": photo_urls("corolla"),
        "contact_phone": "+2348031234567",
    }
    payload.update(overrides)
    return payload


def seller(user_id: str = "seller-1", **kwargs) -> RequestUser:
    kwargs.setdefault("email", f"{user_id}@naijaauto.test")
    return RequestUser(id=user_id, role="seller", **kwargs)


def buyer(user_id: str = "buyer-1") -> RequestUser:
    return RequestUser(id=user_id, role="buyer")


def moderator(user_id: str = "mod-1") -> RequestUser:
    return RequestUser(id=user_id, role="moderator")


def super_admin(user_id: str = "admin-1") -> RequestUser:
    return RequestUser(id=user_id, role="super_admin")


def build_marketplace(*, clock=None, payments=None, mailer=None, settings=None, seed=True) -> MarketplaceService:
    clock = clock or FixedClock()
    repo = InMemoryRepository(clock=clock)
    if seed:
        seed_marketplace(repo)
    return MarketplaceService(
        repo=repo,
        sms=MockMessagingProvider(),
        payments=payments or MockPaymentsProvider(app_url="http://localhost:3000"),
        mailer=mailer or RecordingMailer(),
        settings=settings or Settings(),
        clock=clock,
    )


def onboard_seller(svc: MarketplaceService, user: RequestUser, *, seller_type: str = "private") -> None:
    """Verify the seller's phone and complete onboarding."""
    svc.repo.upsert_user(user_id=user.id, role=user.role, email=user.email)
    svc.repo.mark_phone_verified(user.id, "+2348031234567")
    payload = {"seller_type": seller_type, "full_name": "Ada Okafor", "state": "Lagos", "city": "Ikeja"}
    if seller_type == "dealer":
        payload["business_name"] = "Ada Motors"
    svc.upsert_seller_onboarding(user, payload)


def approved_listing(svc: MarketplaceService, user: RequestUser, **overrides) -> dict:
    created = svc.create_listing(user, listing_payload(**overrides))
    svc.submit_listing(user, created["id"])
    return svc.approve_listing(moderator(), created["id"])
