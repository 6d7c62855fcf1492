from __future__ import annotations

import json
import unittest
from datetime import timedelta
from unittest.mock import MagicMock, patch

import requests

from naijaauto.integrations.payments.paystack_provider import PaystackPaymentsProvider
from naijaauto.services.errors import Conflict, Forbidden, NotFound, Unauthenticated, UpstreamFailure, ValidationFailed
from naijaauto.utils.security import hmac_sha512_hex

from marketplace_fixtures import (
    BASE_TIME,
    FixedClock,
    RecordingMailer,
    approved_listing,
    build_marketplace,
    listing_payload,
    moderator,
    onboard_seller,
    photo_urls,
    seller,
    super_admin,
    vin_for,
)


PAYSTACK_SECRET = "sk_test_naijaauto_webhooks"


def _paystack_ok(authorization_url: str = "https://checkout.paystack.com/abc123"):
    res = MagicMock()
    res.status_code = 200
    res.content = b"{}"
    res.json.return_value = {
        "status": True,
        "message": "Authorization URL created",
        "data": {"authorization_url": authorization_url, "access_code": "abc123"},
    }
    return res


def _charge_event(event_id, reference: str, *, event: str = "charge.success", status: str = "success") -> bytes:
    return json.dumps({"event": event, "data": {"id": event_id, "reference": reference, "status": status}}).encode("utf-8")


class FeaturedCheckoutTestCase(unittest.TestCase):
    def setUp(self):
        self.svc = build_marketplace()
        self.user = seller()
        onboard_seller(self.svc, self.user)
        self.listing = approved_listing(self.svc, self.user)

    def test_packages_are_listed_by_duration(self):
        items = self.svc.list_featured_packages()["items"]
        self.assertEqual([item["code"] for item in items], ["feature_7_days", "feature_14_days", "feature_30_days"])
        self.assertEqual([item["amount_ngn"] for item in items], [25000, 45000, 80000])

    def test_mock_checkout_creates_initiated_transaction(self):
        res = self.svc.create_featured_checkout(self.user, {"listing_id": self.listing["id"], "package_code": "feature_7_days"})
        self.assertRegex(res["reference"], r"^naija_\d+_[0-9a-f]{8}$")
        self.assertIn("mock_payment=1", res["checkout_url"])
        self.assertEqual(res["amount_ngn"], 25000)
        txn = self.svc.repo.get_payment_by_reference(res["reference"])
        self.assertEqual((txn.status, txn.seller_id, txn.listing_id), ("initiated", self.user.id, self.listing["id"]))
        audit = self.svc.repo.list_audit_logs(res["reference"])
        self.assertEqual(audit[0].action, "featured_checkout_initialized")
        self.assertTrue(audit[0].metadata["mocked_provider"])

    def test_only_approved_listings_can_be_featured(self):
        draft = self.svc.create_listing(self.user, listing_payload(vin=vin_for(5), photos=photo_urls("draft")))
        with self.assertRaises(Conflict) as ctx:
            self.svc.create_featured_checkout(self.user, {"listing_id": draft["id"], "package_code": "feature_7_days"})
        self.assertEqual(ctx.exception.code, "LISTING_NOT_APPROVED")

    def test_only_the_owner_can_feature_a_listing(self):
        with self.assertRaises(Forbidden):
            self.svc.create_featured_checkout(seller("seller-2"), {"listing_id": self.listing["id"], "package_code": "feature_7_days"})

    def test_unknown_or_inactive_package_is_not_found(self):
        with self.assertRaises(NotFound):
            self.svc.create_featured_checkout(self.user, {"listing_id": self.listing["id"], "package_code": "feature_90_days"})
        self.svc.update_featured_package_for_admin(super_admin(), "feature_7_days", {"is_active": False})
        with self.assertRaises(NotFound):
            self.svc.create_featured_checkout(self.user, {"listing_id": self.listing["id"], "package_code": "feature_7_days"})
        self.assertNotIn("feature_7_days", [item["code"] for item in self.svc.list_featured_packages()["items"]])
        admin_codes = [item["code"] for item in self.svc.list_featured_packages_for_admin(super_admin())["items"]]
        self.assertIn("feature_7_days", admin_codes)

    def test_package_admin_requires_super_admin(self):
        with self.assertRaises(Forbidden):
            self.svc.list_featured_packages_for_admin(moderator())
        with self.assertRaises(Forbidden):
            self.svc.update_featured_package_for_admin(moderator(), "feature_7_days", {"amount_ngn": 30000})
        updated = self.svc.update_featured_package_for_admin(super_admin(), "feature_7_days", {"amount_ngn": 30000})
        self.assertEqual(updated["amount_ngn"], 30000)
        with self.assertRaises(NotFound):
            self.svc.update_featured_package_for_admin(super_admin(), "missing", {"amount_ngn": 30000})

    def test_provider_failure_marks_transaction_failed(self):
        svc = build_marketplace(payments=PaystackPaymentsProvider(PAYSTACK_SECRET))
        onboard_seller(svc, self.user)
        listing = approved_listing(svc, self.user)
        with patch("naijaauto.services.payment_service.new_payment_reference", return_value="naija_1_deadbeef"), patch(
            "naijaauto.integrations.payments.paystack_provider.requests.post",
            side_effect=requests.ConnectionError("paystack unreachable"),
        ):
            with self.assertRaises(UpstreamFailure) as ctx:
                svc.create_featured_checkout(self.user, {"listing_id": listing["id"], "package_code": "feature_7_days"})
        self.assertEqual(ctx.exception.status, 502)
        self.assertEqual(svc.repo.get_payment_by_reference("naija_1_deadbeef").status, "failed")


class PaystackWebhookTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = FixedClock()
        self.mailer = RecordingMailer()
        self.svc = build_marketplace(clock=self.clock, payments=PaystackPaymentsProvider(PAYSTACK_SECRET), mailer=self.mailer)
        self.user = seller()
        onboard_seller(self.svc, self.user)
        self.listing = approved_listing(self.svc, self.user)

    def _checkout(self, package_code: str = "feature_7_days") -> str:
        with patch("naijaauto.integrations.payments.paystack_provider.requests.post", return_value=_paystack_ok()) as post:
            res = self.svc.create_featured_checkout(self.user, {"listing_id": self.listing["id"], "package_code": package_code})
        sent = post.call_args.kwargs["json"]
        self.assertEqual(sent["reference"], res["reference"])
        self.assertEqual(sent["amount"], res["amount_ngn"] * 100)
        self.assertEqual(res["checkout_url"], "https://checkout.paystack.com/abc123")
        return res["reference"]

    def _deliver(self, body: bytes, signature: str | None = None) -> dict:
        sig = signature if signature is not None else hmac_sha512_hex(PAYSTACK_SECRET, body)
        return self.svc.handle_paystack_webhook(body, sig)

    def _featured_notes(self) -> list:
        return [n for n in self.svc.repo.list_notifications_by_user(self.user.id) if n.title == "Featured listing activated"]

    def test_event_delivered_twice_extends_once(self):
        reference = self._checkout()
        body = _charge_event(445566, reference)

        first = self._deliver(body)
        second = self._deliver(body)

        self.assertEqual(first, {"processed": True, "duplicate": False})
        self.assertEqual(second, {"processed": True, "duplicate": True})
        txn = self.svc.repo.get_payment_by_reference(reference)
        self.assertEqual((txn.status, txn.webhook_event_id), ("paid", "445566"))
        listing = self.svc.repo.get_listing_by_id(self.listing["id"])
        self.assertTrue(listing.is_featured)
        self.assertEqual(listing.featured_until, BASE_TIME + timedelta(days=7))
        self.assertEqual(len(self._featured_notes()), 1)
        self.assertEqual(len(self.mailer.sent), 1)
        self.assertEqual(self.mailer.sent[0]["to"], self.user.email)
        self.assertIn("Toyota Corolla 2015 LE", self.mailer.sent[0]["html"])

    def test_second_purchase_stacks_on_open_window(self):
        first = self._checkout()
        self._deliver(_charge_event(445566, first))
        self.clock.advance(days=2)
        second = self._checkout()
        self._deliver(_charge_event(445567, second))
        listing = self.svc.repo.get_listing_by_id(self.listing["id"])
        self.assertEqual(listing.featured_until, BASE_TIME + timedelta(days=14))

    def test_purchase_after_lapse_starts_from_now(self):
        first = self._checkout()
        self._deliver(_charge_event(1, first))
        now = self.clock.advance(days=10)
        second = self._checkout("feature_14_days")
        self._deliver(_charge_event(2, second))
        listing = self.svc.repo.get_listing_by_id(self.listing["id"])
        self.assertEqual(listing.featured_until, now + timedelta(days=14))

    def test_already_paid_reference_under_new_event_is_duplicate(self):
        reference = self._checkout()
        self._deliver(_charge_event(445566, reference))
        res = self._deliver(_charge_event(999999, reference))
        self.assertTrue(res["duplicate"])
        listing = self.svc.repo.get_listing_by_id(self.listing["id"])
        self.assertEqual(listing.featured_until, BASE_TIME + timedelta(days=7))

    def test_bad_signature_is_rejected(self):
        reference = self._checkout()
        body = _charge_event(445566, reference)
        with self.assertRaises(Unauthenticated) as ctx:
            self._deliver(body, signature="0" * 128)
        self.assertEqual(ctx.exception.code, "INVALID_SIGNATURE")
        with self.assertRaises(Unauthenticated):
            self.svc.handle_paystack_webhook(body, None)
        self.assertEqual(self.svc.repo.get_payment_by_reference(reference).status, "initiated")

    def test_non_success_events_are_acknowledged_without_changes(self):
        reference = self._checkout()
        self.assertEqual(
            self._deliver(_charge_event(12, reference, event="charge.failed", status="failed")),
            {"processed": True, "duplicate": False},
        )
        self.assertEqual(self.svc.repo.get_payment_by_reference(reference).status, "initiated")
        self.assertFalse(self.svc.repo.get_listing_by_id(self.listing["id"]).is_featured)

    def test_malformed_payloads_are_rejected(self):
        with self.assertRaises(ValidationFailed):
            self._deliver(b"not-json")
        with self.assertRaises(ValidationFailed):
            self._deliver(json.dumps({"event": "charge.success", "data": {"reference": "x"}}).encode("utf-8"))

    def test_unknown_reference_is_not_found(self):
        with self.assertRaises(NotFound) as ctx:
            self._deliver(_charge_event(77, "naija_0_00000000"))
        self.assertEqual(ctx.exception.code, "PAYMENT_NOT_FOUND")

    def test_mail_failure_does_not_fail_the_webhook(self):
        self.svc.featured.mailer = RecordingMailer(fail=True)
        reference = self._checkout()
        with self.assertLogs("naijaauto.services.payment_service", level="ERROR"):
            res = self._deliver(_charge_event(445566, reference))
        self.assertFalse(res["duplicate"])
        self.assertEqual(len(self._featured_notes()), 1)
        self.assertEqual(self.svc.repo.get_payment_by_reference(reference).status, "paid")


if __name__ == "__main__":
    unittest.main()
