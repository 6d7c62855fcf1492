from __future__ import annotations

import unittest

from naijaauto.services.integrity import (
    DUPLICATE_PHOTO_THRESHOLD,
    blocks_on_photo_overlap,
    count_overlap,
    normalize_vin,
    photo_fingerprint,
    photo_fingerprints,
)
from naijaauto.store.memory import InMemoryRepository
from naijaauto.store.records import DuplicateImageSignal, Listing
from naijaauto.store.repository import StoreConflictError

from marketplace_fixtures import COROLLA_VIN, FixedClock, photo_urls


def _listing(listing_id: str, *, vin: str = COROLLA_VIN, slug: str | None = None, status: str = "draft", photos=None) -> Listing:
    return Listing(
        id=listing_id,
        seller_id="seller-1",
        seller_type="private",
        title="Toyota Corolla 2015 LE",
        description="x" * 40,
        price_ngn=8_500_000,
        year=2015,
        make="Toyota",
        model="Corolla",
        body_type="car",
        mileage_km=84000,
        transmission="automatic",
        fuel_type="petrol",
        vin=vin,
        state="Lagos",
        city="Ikeja",
        lat=6.6,
        lng=3.3,
        slug=slug or listing_id,
        status=status,
        photos=list(photos if photos is not None else photo_urls(listing_id)),
    )


class IntegrityHelpersTestCase(unittest.TestCase):
    def test_normalize_vin_trims_and_upper_cases(self):
        self.assertEqual(normalize_vin("  jtdbr32e530056781 "), COROLLA_VIN)
        self.assertEqual(normalize_vin(None), "")

    def test_photo_fingerprint_ignores_case_and_surrounding_space(self):
        self.assertEqual(
            photo_fingerprint(" https://CDN.example/A.jpg "),
            photo_fingerprint("https://cdn.example/a.jpg"),
        )
        self.assertEqual(len(photo_fingerprint("https://cdn.example/a.jpg")), 64)

    def test_overlap_counts_matches_per_listing(self):
        shared = photo_urls("shared", 5)
        candidate = set(photo_fingerprints(shared))
        signal = count_overlap(candidate, {"l1": shared[:3], "l2": shared[3:] + photo_urls("other", 2), "l3": photo_urls("x")})
        self.assertEqual(signal.overlap_count, 5)
        self.assertEqual(signal.listing_ids, ["l1", "l2"])

    def test_threshold_blocks_at_eight(self):
        self.assertFalse(blocks_on_photo_overlap(None))
        self.assertFalse(blocks_on_photo_overlap(DuplicateImageSignal(overlap_count=DUPLICATE_PHOTO_THRESHOLD - 1)))
        self.assertTrue(blocks_on_photo_overlap(DuplicateImageSignal(overlap_count=DUPLICATE_PHOTO_THRESHOLD)))


class InMemoryRepositoryIntegrityTestCase(unittest.TestCase):
    def setUp(self):
        self.repo = InMemoryRepository(clock=FixedClock())

    def test_live_vin_is_unique(self):
        self.repo.create_listing(_listing("a"))
        self.assertTrue(self.repo.has_duplicate_vin(COROLLA_VIN.lower()))
        self.assertFalse(self.repo.has_duplicate_vin(COROLLA_VIN, exclude_listing_id="a"))
        with self.assertRaises(StoreConflictError) as ctx:
            self.repo.create_listing(_listing("b"))
        self.assertEqual(ctx.exception.constraint, "listing_vin")

    def test_rejected_listing_releases_its_vin(self):
        self.repo.create_listing(_listing("a"))
        self.repo.update_listing("a", {"status": "rejected"})
        self.assertFalse(self.repo.has_duplicate_vin(COROLLA_VIN))
        self.repo.create_listing(_listing("b"))
        # Reopening the rejected listing would create a second live holder.
        with self.assertRaises(StoreConflictError):
            self.repo.update_listing("a", {"status": "draft"})

    def test_slug_is_unique(self):
        self.repo.create_listing(_listing("a", slug="toyota-corolla-ikeja-2015"))
        self.assertTrue(self.repo.slug_exists("toyota-corolla-ikeja-2015"))
        self.assertFalse(self.repo.slug_exists("toyota-corolla-ikeja-2015", exclude_listing_id="a"))
        with self.assertRaises(StoreConflictError) as ctx:
            self.repo.create_listing(_listing("b", vin="JTDBR32E530000002", slug="toyota-corolla-ikeja-2015"))
        self.assertEqual(ctx.exception.constraint, "listing_slug")

    def test_duplicate_image_detection_excludes_self(self):
        photos = photo_urls("shared", 10)
        self.repo.create_listing(_listing("a", photos=photos))
        hashes = photo_fingerprints(photos)
        self.assertEqual(self.repo.detect_duplicate_image_hashes(hashes).overlap_count, 10)
        self.assertEqual(self.repo.detect_duplicate_image_hashes(hashes, exclude_listing_id="a").overlap_count, 0)
        self.assertEqual(self.repo.detect_duplicate_image_hashes([]).overlap_count, 0)

    def test_update_rejects_unknown_fields(self):
        self.repo.create_listing(_listing("a"))
        with self.assertRaises(ValueError):
            self.repo.update_listing("a", {"seller_id": "someone-else"})

    def test_returned_records_are_copies(self):
        created = self.repo.create_listing(_listing("a"))
        created.photos.append("https://cdn.example/injected.jpg")
        self.assertEqual(len(self.repo.get_listing_by_id("a").photos), 15)


if __name__ == "__main__":
    unittest.main()
