from __future__ import annotations

import unittest

from naijaauto.services.errors import ValidationFailed
from naijaauto.services.validation import (
    DEFAULT_PAGE_SIZE,
    parse_create_listing,
    parse_featured_checkout,
    parse_featured_package_update,
    parse_moderation_decision,
    parse_search_query,
    parse_seller_onboarding,
    parse_update_listing,
    parse_verify_otp,
)

from marketplace_fixtures import COROLLA_VIN, listing_payload


class ListingValidationTestCase(unittest.TestCase):
    def _field_errors(self, ctx) -> dict:
        return {item["field"]: item["message"] for item in ctx.exception.fields}

    def test_valid_payload_is_cleaned(self):
        cleaned = parse_create_listing(
            listing_payload(vin=f"  {COROLLA_VIN.lower()} ", title="  Toyota Corolla 2015 LE  "),
            current_year=2026,
        )
        self.assertEqual(cleaned["vin"], COROLLA_VIN)
        self.assertEqual(cleaned["title"], "Toyota Corolla 2015 LE")
        self.assertEqual(len(cleaned["photos"]), 15)
        self.assertNotIn("contact_whatsapp", cleaned)

    def test_collects_every_field_error(self):
        with self.assertRaises(ValidationFailed) as ctx:
            parse_create_listing(
                listing_payload(title="Short", price_ngn=100, vin="ABC", body_type="truck", photos=[]),
                current_year=2026,
            )
        errors = self._field_errors(ctx)
        self.assertEqual(ctx.exception.status, 400)
        self.assertEqual(set(errors), {"title", "price_ngn", "vin", "body_type", "photos"})
        self.assertEqual(errors["price_ngn"], "price_ngn must be at least 500000.")
        self.assertEqual(ctx.exception.message, errors["title"])

    def test_year_upper_bound_follows_current_year(self):
        parse_create_listing(listing_payload(year=2027), current_year=2026)
        with self.assertRaises(ValidationFailed):
            parse_create_listing(listing_payload(year=2028), current_year=2026)
        with self.assertRaises(ValidationFailed):
            parse_create_listing(listing_payload(year=1979), current_year=2026)

    def test_rejects_non_http_photo_urls_and_booleans_as_numbers(self):
        with self.assertRaises(ValidationFailed) as ctx:
            parse_create_listing(
                listing_payload(photos=["ftp://cdn/1.jpg"], mileage_km=True),
                current_year=2026,
            )
        self.assertEqual(set(self._field_errors(ctx)), {"photos", "mileage_km"})

    def test_missing_required_fields_are_reported(self):
        with self.assertRaises(ValidationFailed) as ctx:
            parse_create_listing({"title": "Toyota Corolla 2015"}, current_year=2026)
        self.assertIn("vin", self._field_errors(ctx))
        self.assertEqual(self._field_errors(ctx)["vin"], "vin is required.")

    def test_non_object_payload_is_rejected(self):
        with self.assertRaises(ValidationFailed):
            parse_create_listing(["not", "a", "dict"], current_year=2026)

    def test_update_is_partial(self):
        self.assertEqual(parse_update_listing({"price_ngn": 7_900_000}, current_year=2026), {"price_ngn": 7_900_000})
        with self.assertRaises(ValidationFailed):
            parse_update_listing({"lat": 120}, current_year=2026)


class SearchQueryValidationTestCase(unittest.TestCase):
    def test_defaults_and_string_coercion(self):
        q = parse_search_query({"min_price_ngn": "1000000", "page": "2", "make": "  "}, current_year=2026)
        self.assertEqual(q.min_price_ngn, 1_000_000)
        self.assertEqual(q.page, 2)
        self.assertEqual(q.page_size, DEFAULT_PAGE_SIZE)
        self.assertIsNone(q.make)

    def test_page_size_is_capped(self):
        with self.assertRaises(ValidationFailed):
            parse_search_query({"page_size": "51"}, current_year=2026)
        with self.assertRaises(ValidationFailed):
            parse_search_query({"page": "0"}, current_year=2026)


class OtherPayloadValidationTestCase(unittest.TestCase):
    def test_otp_code_must_be_six_characters(self):
        with self.assertRaises(ValidationFailed):
            parse_verify_otp({"phone": "+2348031234567", "code": "12345"})

    def test_checkout_requires_uuid_listing_id(self):
        with self.assertRaises(ValidationFailed) as ctx:
            parse_featured_checkout({"listing_id": "toyota-corolla", "package_code": "feature_7_days"})
        self.assertEqual(ctx.exception.fields[0]["field"], "listing_id")

    def test_moderation_reason_is_optional_but_bounded(self):
        self.assertEqual(parse_moderation_decision({}), {})
        with self.assertRaises(ValidationFailed):
            parse_moderation_decision({"reason": "bad"})

    def test_dealer_onboarding_requires_business_name(self):
        with self.assertRaises(ValidationFailed) as ctx:
            parse_seller_onboarding({"seller_type": "dealer", "full_name": "Ada", "state": "Lagos", "city": "Ikeja"})
        self.assertEqual(ctx.exception.message, "Business name is required for dealer accounts.")

    def test_onboarding_blank_optionals_become_none(self):
        data = parse_seller_onboarding(
            {"seller_type": "PRIVATE", "full_name": "Ada", "state": "Lagos", "city": "Ikeja", "bio": "   "}
        )
        self.assertEqual(data.seller_type, "private")
        self.assertIsNone(data.bio)

    def test_package_update_needs_at_least_one_field(self):
        with self.assertRaises(ValidationFailed) as ctx:
            parse_featured_package_update({})
        self.assertEqual(ctx.exception.message, "At least one field is required for update.")
        self.assertEqual(parse_featured_package_update({"is_active": "false"}), {"is_active": False})


if __name__ == "__main__":
    unittest.main()
