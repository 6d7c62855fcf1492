"""Featured placement checkout and Paystack webhook reconciliation.

Webhook deliveries are at-least-once. The provider event id is the
idempotency key: it is stored on the transaction when it becomes paid and the
store rejects a second transaction claiming the same id, so a replayed event
can never extend a featured window twice.
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from html import escape
from urllib.parse import quote

from naijaauto.integrations.common import IntegrationError, epoch_ms
from naijaauto.integrations.mail.base import Mailer
from naijaauto.integrations.payments.base import PaymentsProvider
from naijaauto.services.common import FORBIDDEN_MESSAGE, RequestUser, ServiceContext, assert_role
from naijaauto.services.errors import Conflict, Forbidden, NotFound, Unauthenticated, UpstreamFailure, ValidationFailed
from naijaauto.services.validation import parse_featured_checkout, parse_featured_package_update
from naijaauto.store.records import (
    PAYMENT_PAID,
    ROLE_SELLER,
    ROLE_SUPER_ADMIN,
    STATUS_APPROVED,
    PaymentTransaction,
)
from naijaauto.store.repository import StoreConflictError

logger = logging.getLogger(__name__)


CHARGE_SUCCESS_EVENT = "charge.success"


def new_payment_reference() -> str:
    return f"naija_{epoch_ms()}_{uuid.uuid4().hex[:8]}"


@dataclass
class FeaturedPaymentService:
    ctx: ServiceContext
    payments: PaymentsProvider
    mailer: Mailer
    app_url: str = "http://localhost:3000"

    # packages
    def list_featured_packages(self) -> dict:
        return {"items": [pkg.to_dict() for pkg in self.ctx.repo.list_featured_packages()]}

    def list_featured_packages_for_admin(self, user: RequestUser | None) -> dict:
        assert_role(user, ROLE_SUPER_ADMIN)
        return {"items": [pkg.to_dict() for pkg in self.ctx.repo.list_featured_packages(include_inactive=True)]}

    def update_featured_package_for_admin(self, user: RequestUser | None, code: str, payload) -> dict:
        user = assert_role(user, ROLE_SUPER_ADMIN)
        changes = parse_featured_package_update(payload)
        self.ctx.sync_actor(user)
        pkg = self.ctx.repo.update_featured_package((code or "").strip(), changes)
        if pkg is None:
            raise NotFound("Featured package not found.", code="PACKAGE_NOT_FOUND")
        self.ctx.audit(
            "featured_package_updated",
            entity_type="featured_package",
            entity_id=pkg.id,
            actor=user.id,
            code=pkg.code,
            fields=sorted(changes.keys()),
        )
        logger.info("featured_package_updated code=%s fields=%s", pkg.code, ",".join(sorted(changes.keys())))
        return pkg.to_dict()

    # checkout
    def create_featured_checkout(self, user: RequestUser | None, payload) -> dict:
        user = assert_role(user, ROLE_SELLER)
        data = parse_featured_checkout(payload)
        stored = self.ctx.sync_actor(user)

        listing = self.ctx.repo.get_listing_by_id(data["listing_id"].lower())
        if listing is None:
            raise NotFound("Listing not found.", code="LISTING_NOT_FOUND")
        if listing.seller_id != user.id:
            raise Forbidden(FORBIDDEN_MESSAGE)
        if listing.status != STATUS_APPROVED:
            raise Conflict("Only approved listings can be featured.", code="LISTING_NOT_APPROVED")
        pkg = self.ctx.repo.get_featured_package_by_code(data["package_code"])
        if pkg is None:
            raise NotFound("Featured package not found.", code="PACKAGE_NOT_FOUND")

        reference = new_payment_reference()
        self.ctx.repo.create_payment_transaction(
            PaymentTransaction(
                id=str(uuid.uuid4()),
                listing_id=listing.id,
                seller_id=user.id,
                package_code=pkg.code,
                amount_ngn=int(pkg.amount_ngn),
                reference=reference,
                provider="paystack",
            )
        )
        email = stored.email or f"seller-{user.id}@naijaauto.local"
        try:
            init = self.payments.initialize_transaction(
                email=email,
                amount_kobo=int(pkg.amount_ngn) * 100,
                reference=reference,
                callback_url=f"{self.app_url}/seller/dashboard?reference={quote(reference)}",
                metadata={"listing_id": listing.id, "package_code": pkg.code, "seller_id": user.id},
            )
        except IntegrationError as e:
            self.ctx.repo.mark_payment_failed(reference)
            logger.warning("featured_checkout_provider_failed reference=%s err=%s", reference, e)
            raise UpstreamFailure("Payment provider is unavailable. Try again shortly.", code="PAYMENT_PROVIDER_FAILED") from e

        self.ctx.audit(
            "featured_checkout_initialized",
            entity_type="payment",
            entity_id=reference,
            actor=user.id,
            reference=reference,
            listing_id=listing.id,
            package_code=pkg.code,
            mocked_provider=bool(init.mocked),
        )
        logger.info("featured_checkout_initialized reference=%s listing_id=%s mocked=%s", reference, listing.id, init.mocked)
        return {
            "checkout_url": init.authorization_url,
            "access_code": init.access_code,
            "reference": reference,
            "amount_ngn": int(pkg.amount_ngn),
            "package_code": pkg.code,
        }

    # webhook
    def handle_paystack_webhook(self, raw_body: bytes | str, signature: str | None) -> dict:
        body = raw_body.encode("utf-8") if isinstance(raw_body, str) else (raw_body or b"")
        if not self.payments.verify_webhook_signature(body, signature):
            logger.warning("paystack_webhook_invalid_signature")
            raise Unauthenticated("Invalid webhook signature.", code="INVALID_SIGNATURE")
        try:
            event = json.loads(body.decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationFailed("Webhook payload is not valid JSON.", code="INVALID_PAYLOAD") from e
        if not isinstance(event, dict) or not isinstance(event.get("data"), dict):
            raise ValidationFailed("Webhook payload is missing data.", code="INVALID_PAYLOAD")
        data = event["data"]
        if data.get("id") in (None, ""):
            raise ValidationFailed("Webhook payload is missing data.id.", code="INVALID_PAYLOAD")

        event_id = str(data["id"])
        if self.ctx.repo.get_payment_by_webhook_event_id(event_id) is not None:
            logger.info("paystack_webhook_replayed event_id=%s", event_id)
            return {"processed": True, "duplicate": True}

        if event.get("event") != CHARGE_SUCCESS_EVENT or str(data.get("status") or "") != "success":
            return {"processed": True, "duplicate": False}

        reference = str(data.get("reference") or "").strip()
        txn = self.ctx.repo.get_payment_by_reference(reference) if reference else None
        if txn is None:
            raise NotFound("Payment transaction not found.", code="PAYMENT_NOT_FOUND")
        if txn.status == PAYMENT_PAID:
            logger.info("paystack_webhook_reference_already_paid reference=%s event_id=%s", reference, event_id)
            return {"processed": True, "duplicate": True}

        now = self.ctx.now()
        try:
            paid = self.ctx.repo.mark_payment_paid(
                reference=reference,
                webhook_event_id=event_id,
                provider_transaction_id=event_id,
                paid_at=now,
            )
        except StoreConflictError:
            logger.info("paystack_webhook_concurrent_duplicate event_id=%s", event_id)
            return {"processed": True, "duplicate": True}
        if paid is None:
            raise NotFound("Payment transaction not found.", code="PAYMENT_NOT_FOUND")

        listing = self.ctx.repo.get_listing_by_id(paid.listing_id)
        pkg = self.ctx.repo.get_featured_package_by_code(paid.package_code, include_inactive=True)
        if listing is not None and pkg is not None:
            start = listing.featured_until if listing.featured_until and listing.featured_until > now else now
            featured_until = start + timedelta(days=int(pkg.duration_days))
            self.ctx.repo.update_listing(listing.id, {"is_featured": True, "featured_until": featured_until})
            self._notify_seller(paid, pkg.duration_days, listing.title)
        else:
            logger.warning("paystack_webhook_unresolved_target reference=%s", reference)

        self.ctx.audit(
            "paystack_charge_success",
            entity_type="payment",
            entity_id=reference,
            actor=paid.seller_id,
            reference=reference,
            event_id=event_id,
            listing_id=paid.listing_id,
        )
        logger.info("paystack_charge_success reference=%s event_id=%s", reference, event_id)
        return {"processed": True, "duplicate": False}

    def _notify_seller(self, txn: PaymentTransaction, duration_days: int, listing_title: str) -> None:
        try:
            self.ctx.repo.add_notification(
                user_id=txn.seller_id,
                title="Featured listing activated",
                body=f"Your listing has been boosted for {int(duration_days)} days.",
            )
        except Exception:
            logger.exception("featured_notification_failed reference=%s", txn.reference)
        try:
            seller = self.ctx.repo.get_user_by_id(txn.seller_id)
            if seller is not None and seller.email:
                title = escape(listing_title or "")
                self.mailer.send(
                    to=seller.email,
                    subject="NaijaAuto Featured Listing Activated",
                    html=(
                        f"<p>Your listing <strong>{title}</strong> is now featured for "
                        f"{int(duration_days)} days.</p><p>Reference: {txn.reference}</p>"
                    ),
                )
        except Exception:
            logger.exception("featured_email_failed reference=%s", txn.reference)
