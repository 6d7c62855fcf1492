from __future__ import annotations

import unittest

from naijaauto.services.errors import Forbidden, ValidationFailed

from marketplace_fixtures import (
    FixedClock,
    approved_listing,
    build_marketplace,
    buyer,
    onboard_seller,
    seller,
)


PROFILE = {"seller_type": "dealer", "full_name": "Chidi Eze", "state": "Lagos", "city": "Lekki", "business_name": "Eze Autos"}


class SellerOnboardingTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = FixedClock()
        self.svc = build_marketplace(clock=self.clock)
        self.user = seller("dealer-1")

    def test_new_seller_is_incomplete(self):
        status = self.svc.get_seller_onboarding(self.user)
        self.assertFalse(status["completed"])
        self.assertEqual(status["missing"], ["seller_type", "full_name", "state", "city"])

    def test_dealer_onboarding_completes_with_business_profile(self):
        status = self.svc.upsert_seller_onboarding(self.user, dict(PROFILE, cac_number="RC123456", bio=""))
        self.assertTrue(status["completed"])
        self.assertEqual(status["seller_type"], "dealer")
        self.assertEqual(status["business_name"], "Eze Autos")
        self.assertEqual(status["cac_number"], "RC123456")
        self.assertIsNone(status["bio"])
        self.assertEqual(self.svc.repo.get_user_by_id(self.user.id).seller_type, "dealer")
        actions = [entry.action for entry in self.svc.repo.list_audit_logs(self.user.id)]
        self.assertIn("seller_onboarding_updated", actions)

    def test_switching_to_private_drops_dealer_profile(self):
        self.svc.upsert_seller_onboarding(self.user, PROFILE)
        status = self.svc.upsert_seller_onboarding(self.user, dict(PROFILE, seller_type="private"))
        self.assertTrue(status["completed"])
        self.assertIsNone(status["business_name"])
        self.assertIsNone(self.svc.repo.get_dealer_profile(self.user.id))

    def test_dealer_without_business_name_is_rejected(self):
        payload = dict(PROFILE)
        payload.pop("business_name")
        with self.assertRaises(ValidationFailed) as ctx:
            self.svc.upsert_seller_onboarding(self.user, payload)
        self.assertEqual(ctx.exception.fields[0]["field"], "business_name")

    def test_token_seller_type_does_not_erase_stored_choice(self):
        self.svc.upsert_seller_onboarding(self.user, PROFILE)
        status = self.svc.get_seller_onboarding(seller("dealer-1", seller_type=None))
        self.assertEqual(status["seller_type"], "dealer")

    def test_buyers_have_no_seller_profile(self):
        with self.assertRaises(Forbidden):
            self.svc.get_seller_onboarding(buyer())
        with self.assertRaises(Forbidden):
            self.svc.upsert_seller_onboarding(buyer(), PROFILE)


class SellerDashboardTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = FixedClock()
        self.svc = build_marketplace(clock=self.clock)
        self.user = seller()
        onboard_seller(self.svc, self.user, seller_type="dealer")

    def test_dashboard_summarizes_listings_and_activity(self):
        listing = approved_listing(self.svc, self.user)
        self.assertEqual(listing["seller_type"], "dealer")
        self.svc.track_contact_click(None, listing["id"], {"channel": "phone"})
        self.clock.advance(days=8)
        self.svc.track_contact_click(buyer(), listing["id"], {"channel": "whatsapp"})
        self.svc.track_contact_click(None, listing["id"], {"channel": "phone"})

        dashboard = self.svc.get_seller_dashboard(self.user)
        self.assertEqual([item["id"] for item in dashboard["listings"]], [listing["id"]])
        self.assertEqual(dashboard["listing_counts"], {"approved": 1})
        self.assertEqual(dashboard["contact_clicks_7d"], 2)
        self.assertEqual(dashboard["notifications"][0]["title"], "Listing approved")
        self.assertEqual(dashboard["favorites_count"], 0)
        self.assertTrue(dashboard["onboarding"]["completed"])

    def test_dashboard_is_seller_only(self):
        with self.assertRaises(Forbidden):
            self.svc.get_seller_dashboard(buyer())


if __name__ == "__main__":
    unittest.main()
