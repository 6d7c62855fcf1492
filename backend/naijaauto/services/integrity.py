"""Fraud and integrity checks for listings.

Only exact matches are detected: two photos are "the same" when their
normalized URLs hash to the same SHA-256 digest. The VIN check compares
normalized VINs among listings that still hold their VIN.
"""
from __future__ import annotations

from naijaauto.store.records import DuplicateImageSignal
from naijaauto.utils.security import sha256_hex


DUPLICATE_PHOTO_THRESHOLD = 8
MIN_SUBMIT_PHOTOS = 15
VIN_LENGTH = 17


def normalize_vin(vin: str | None) -> str:
    return (vin or "").strip().upper()


def photo_fingerprint(url: str) -> str:
    return sha256_hex((url or "").strip().lower())


def photo_fingerprints(photos: list[str] | None) -> list[str]:
    return [photo_fingerprint(url) for url in (photos or [])]


def blocks_on_photo_overlap(signal: DuplicateImageSignal | None) -> bool:
    if signal is None:
        return False
    return int(signal.overlap_count or 0) >= DUPLICATE_PHOTO_THRESHOLD


def count_overlap(candidate_hashes: set[str], photos_by_listing: dict[str, list[str]]) -> DuplicateImageSignal:
    """Count photos of other listings whose fingerprint is in ``candidate_hashes``."""
    overlap = 0
    involved: list[str] = []
    for listing_id, photos in photos_by_listing.items():
        matched = 0
        for url in photos or []:
            if photo_fingerprint(url) in candidate_hashes:
                matched += 1
        if matched:
            overlap += matched
            involved.append(listing_id)
    return DuplicateImageSignal(overlap_count=overlap, listing_ids=involved)
