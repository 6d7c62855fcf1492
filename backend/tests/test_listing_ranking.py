from __future__ import annotations

import unittest
from datetime import timedelta

from naijaauto.services.ranking import rank_listings, score_listing
from naijaauto.store.records import Listing

from marketplace_fixtures import BASE_TIME, vin_for


def _listing(listing_id: str, *, hours_old: float, **overrides) -> Listing:
    fields = {
        "id": listing_id,
        "seller_id": "seller-1",
        "seller_type": "private",
        "title": "Toyota Camry 2012",
        "description": "x" * 40,
        "price_ngn": 4_000_000,
        "year": 2012,
        "make": "Toyota",
        "model": "Camry",
        "body_type": "car",
        "mileage_km": 120000,
        "transmission": "automatic",
        "fuel_type": "petrol",
        "vin": vin_for(1),
        "state": "Lagos",
        "city": "Ikeja",
        "lat": 6.6,
        "lng": 3.3,
        "slug": listing_id,
        "status": "approved",
        "created_at": BASE_TIME - timedelta(hours=hours_old),
    }
    fields.update(overrides)
    return Listing(**fields)


class ListingRankingTestCase(unittest.TestCase):
    def test_fresh_listing_scores_near_freshness_ceiling(self):
        listing = _listing("a", hours_old=0)
        self.assertAlmostEqual(score_listing(listing, now=BASE_TIME), 20.0 - 1.0 / 24.0)

    def test_freshness_never_goes_negative(self):
        listing = _listing("old", hours_old=24 * 60)
        self.assertEqual(score_listing(listing, now=BASE_TIME), 0.0)

    def test_featured_boost_applies_only_while_window_is_open(self):
        active = _listing("a", hours_old=48, is_featured=True, featured_until=BASE_TIME + timedelta(days=1))
        lapsed = _listing("b", hours_old=48, is_featured=True, featured_until=BASE_TIME - timedelta(minutes=1))
        plain = _listing("c", hours_old=48)
        self.assertAlmostEqual(score_listing(active, now=BASE_TIME) - score_listing(plain, now=BASE_TIME), 30.0)
        self.assertAlmostEqual(score_listing(lapsed, now=BASE_TIME), score_listing(plain, now=BASE_TIME))

    def test_relevance_adds_title_make_model_and_location_matches(self):
        listing = _listing("a", hours_old=48, title="Lagos Toyota Camry deal")
        base = score_listing(listing, now=BASE_TIME)
        self.assertAlmostEqual(score_listing(listing, "camry", now=BASE_TIME) - base, 11.0)
        self.assertAlmostEqual(score_listing(listing, "  LAGOS ", now=BASE_TIME) - base, 8.0)
        self.assertAlmostEqual(score_listing(listing, "   ", now=BASE_TIME), base)

    def test_featured_listing_outranks_newer_plain_listing(self):
        featured = _listing("featured", hours_old=72, is_featured=True, featured_until=BASE_TIME + timedelta(days=3))
        fresh = _listing("fresh", hours_old=1)
        ranked = rank_listings([fresh, featured], now=BASE_TIME)
        self.assertEqual([item.id for item in ranked], ["featured", "fresh"])

    def test_equal_scores_fall_back_to_newest_first(self):
        older = _listing("older", hours_old=24 * 30)
        newer = _listing("newer", hours_old=24 * 25)
        ranked = rank_listings([older, newer], now=BASE_TIME)
        self.assertEqual([item.id for item in ranked], ["newer", "older"])

    def test_ranking_is_deterministic_and_leaves_input_untouched(self):
        items = [_listing(str(i), hours_old=i * 5) for i in range(6)]
        original = [item.id for item in items]
        first = [item.id for item in rank_listings(items, "toyota", now=BASE_TIME)]
        second = [item.id for item in rank_listings(list(reversed(items)), "toyota", now=BASE_TIME)]
        self.assertEqual(first, second)
        self.assertEqual([item.id for item in items], original)


if __name__ == "__main__":
    unittest.main()
