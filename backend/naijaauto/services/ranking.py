from __future__ import annotations

from datetime import datetime

from naijaauto.store.records import Listing, utcnow


FEATURED_BOOST = 30.0
TITLE_MATCH_SCORE = 6.0
MAKE_MODEL_MATCH_SCORE = 5.0
LOCATION_MATCH_SCORE = 2.0
FRESHNESS_MAX = 20.0


def _is_featured(listing: Listing, now: datetime) -> bool:
    return bool(listing.is_featured and listing.featured_until and listing.featured_until > now)


def _relevance(listing: Listing, query: str) -> float:
    score = 0.0
    if query in (listing.title or "").lower():
        score += TITLE_MATCH_SCORE
    if query in f"{listing.make} {listing.model}".lower():
        score += MAKE_MODEL_MATCH_SCORE
    if query in f"{listing.city} {listing.state}".lower():
        score += LOCATION_MATCH_SCORE
    return score


def _freshness(listing: Listing, now: datetime) -> float:
    age_hours = max(1.0, (now - listing.created_at).total_seconds() / 3600.0)
    return max(0.0, FRESHNESS_MAX - age_hours / 24.0)


def score_listing(listing: Listing, query: str | None = None, *, now: datetime | None = None) -> float:
    now = now or utcnow()
    normalized = (query or "").strip().lower()
    score = FEATURED_BOOST if _is_featured(listing, now) else 0.0
    if normalized:
        score += _relevance(listing, normalized)
    return score + _freshness(listing, now)


def rank_listings(listings: list[Listing], query: str | None = None, *, now: datetime | None = None) -> list[Listing]:
    """Order listings by score, newest first among equal scores.

    Pure for a fixed ``now``; the input list is not modified.
    """
    now = now or utcnow()
    scored = [(score_listing(item, query, now=now), item) for item in listings]
    scored.sort(key=lambda pair: (pair[0], pair[1].created_at), reverse=True)
    return [item for _score, item in scored]
