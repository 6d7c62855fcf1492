from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from naijaauto.services.common import FORBIDDEN_MESSAGE, RequestUser, ServiceContext, assert_role, require_user
from naijaauto.services.errors import Conflict, Forbidden, NotFound
from naijaauto.services.integrity import (
    MIN_SUBMIT_PHOTOS,
    VIN_LENGTH,
    blocks_on_photo_overlap,
    normalize_vin,
    photo_fingerprints,
)
from naijaauto.services.ranking import rank_listings
from naijaauto.services.seller_service import onboarding_status
from naijaauto.services.validation import (
    ListingSearchQuery,
    parse_contact_click,
    parse_create_listing,
    parse_search_query,
    parse_update_listing,
)
from naijaauto.store.records import (
    ROLE_SELLER,
    STATUS_APPROVED,
    STATUS_DRAFT,
    STATUS_PENDING_REVIEW,
    STATUS_REJECTED,
    Listing,
    User,
)
from naijaauto.store.repository import StoreConflictError
from naijaauto.utils.security import create_slug

logger = logging.getLogger(__name__)


VIN_CONFLICT_MESSAGE = "A live listing with this VIN already exists."
EDITABLE_STATUSES = (STATUS_DRAFT, STATUS_REJECTED)
SLUG_FIELDS = ("make", "model", "city", "year")


def _store_conflict(error: StoreConflictError) -> Conflict:
    if error.constraint == "listing_vin":
        return Conflict(VIN_CONFLICT_MESSAGE, code="VIN_CONFLICT")
    return Conflict("Listing could not be saved because of a conflicting change. Try again.", code="LISTING_CONFLICT")


def _matches(listing: Listing, q: ListingSearchQuery) -> bool:
    def same(left: str, right: str | None) -> bool:
        return right is None or (left or "").strip().lower() == right.strip().lower()

    if not (same(listing.make, q.make) and same(listing.model, q.model)):
        return False
    if not (same(listing.state, q.state) and same(listing.city, q.city)):
        return False
    if q.body_type and listing.body_type != q.body_type:
        return False
    if q.min_price_ngn is not None and listing.price_ngn < q.min_price_ngn:
        return False
    if q.max_price_ngn is not None and listing.price_ngn > q.max_price_ngn:
        return False
    if q.min_year is not None and listing.year < q.min_year:
        return False
    if q.max_year is not None and listing.year > q.max_year:
        return False
    if q.query:
        haystack = f"{listing.title} {listing.make} {listing.model} {listing.city} {listing.state}".lower()
        if q.query.strip().lower() not in haystack:
            return False
    return True


@dataclass
class ListingService:
    ctx: ServiceContext

    # gates
    def _require_publishing_seller(self, user: RequestUser | None) -> tuple[RequestUser, User]:
        user = assert_role(user, ROLE_SELLER)
        stored = self.ctx.sync_actor(user)
        if not stored.phone_verified:
            raise Forbidden("Verify phone number before creating listings.", code="PHONE_NOT_VERIFIED")
        status = onboarding_status(self.ctx, user.id)
        if not status["completed"]:
            raise Forbidden(
                "Complete seller onboarding before publishing listings.",
                code="ONBOARDING_INCOMPLETE",
                fields=[{"field": name, "message": f"{name} is required."} for name in status["missing"]],
            )
        return user, stored

    def _require_owned_listing(self, user: RequestUser, identifier: str) -> Listing:
        listing = self.ctx.require_listing(identifier)
        if listing.seller_id != user.id:
            raise Forbidden(FORBIDDEN_MESSAGE)
        return listing

    def _unique_slug(self, make, model, city, year, exclude_listing_id: str | None = None) -> str:
        base = create_slug(f"{make}-{model}-{city}-{year}") or "listing"
        candidate = base
        index = 1
        while self.ctx.repo.slug_exists(candidate, exclude_listing_id=exclude_listing_id):
            index += 1
            candidate = f"{base}-{index}"
        return candidate

    # lifecycle
    def create_listing(self, user: RequestUser | None, payload) -> dict:
        user, stored = self._require_publishing_seller(user)
        data = parse_create_listing(payload, current_year=self.ctx.now().year)

        if self.ctx.repo.has_duplicate_vin(data["vin"]):
            raise Conflict(VIN_CONFLICT_MESSAGE, code="VIN_CONFLICT")
        signal = self.ctx.repo.detect_duplicate_image_hashes(photo_fingerprints(data["photos"]))

        listing = Listing(
            id=str(uuid.uuid4()),
            seller_id=user.id,
            seller_type=stored.seller_type or "private",
            status=STATUS_DRAFT,
            slug=self._unique_slug(data["make"], data["model"], data["city"], data["year"]),
            **data,
        )
        try:
            created = self.ctx.repo.create_listing(listing)
        except StoreConflictError as e:
            raise _store_conflict(e) from e

        self.ctx.audit(
            "listing_created",
            entity_type="listing",
            entity_id=created.id,
            actor=user.id,
            duplicate_image_overlap=int(signal.overlap_count),
            duplicate_listing_ids=list(signal.listing_ids),
        )
        logger.info("listing_created id=%s seller_id=%s overlap=%s", created.id, user.id, signal.overlap_count)
        return created.to_dict()

    def update_listing(self, user: RequestUser | None, identifier: str, payload) -> dict:
        user = assert_role(user, ROLE_SELLER)
        self.ctx.sync_actor(user)
        listing = self._require_owned_listing(user, identifier)
        if listing.status not in EDITABLE_STATUSES:
            if listing.status == STATUS_APPROVED:
                message = "Approved listings cannot be edited directly. Duplicate and resubmit."
            else:
                message = "Listing cannot be edited while it is in its current state."
            raise Conflict(message, code="LISTING_NOT_EDITABLE")

        changes = parse_update_listing(payload, current_year=self.ctx.now().year)
        if "vin" in changes and self.ctx.repo.has_duplicate_vin(changes["vin"], exclude_listing_id=listing.id):
            raise Conflict(VIN_CONFLICT_MESSAGE, code="VIN_CONFLICT")
        if "photos" in changes:
            signal = self.ctx.repo.detect_duplicate_image_hashes(
                photo_fingerprints(changes["photos"]),
                exclude_listing_id=listing.id,
            )
            if blocks_on_photo_overlap(signal):
                raise Conflict(
                    "Photos appear duplicated from existing listings. Use original vehicle photos.",
                    code="DUPLICATE_PHOTOS",
                )

        updated_fields = sorted(changes.keys())
        if any(name in changes for name in SLUG_FIELDS):
            changes["slug"] = self._unique_slug(
                changes.get("make", listing.make),
                changes.get("model", listing.model),
                changes.get("city", listing.city),
                changes.get("year", listing.year),
                exclude_listing_id=listing.id,
            )
        if listing.status == STATUS_REJECTED:
            changes["status"] = STATUS_DRAFT

        try:
            updated = self.ctx.repo.update_listing(listing.id, changes)
        except StoreConflictError as e:
            raise _store_conflict(e) from e
        if updated is None:
            raise NotFound("Listing not found.", code="LISTING_NOT_FOUND")

        self.ctx.audit("listing_updated", entity_type="listing", entity_id=listing.id, actor=user.id, fields=updated_fields)
        logger.info("listing_updated id=%s fields=%s", listing.id, ",".join(updated_fields))
        return updated.to_dict()

    def submit_listing(self, user: RequestUser | None, identifier: str) -> dict:
        user, _stored = self._require_publishing_seller(user)
        listing = self._require_owned_listing(user, identifier)
        if listing.status not in EDITABLE_STATUSES:
            raise Conflict("Only draft or rejected listings can be submitted for review.", code="INVALID_TRANSITION")
        if len(normalize_vin(listing.vin)) != VIN_LENGTH:
            raise Conflict("VIN is required before submission.", code="VIN_REQUIRED")
        if len(listing.photos or []) < MIN_SUBMIT_PHOTOS:
            raise Conflict(f"At least {MIN_SUBMIT_PHOTOS} photos are required before submission.", code="NOT_ENOUGH_PHOTOS")
        if self.ctx.repo.has_duplicate_vin(listing.vin, exclude_listing_id=listing.id):
            raise Conflict(VIN_CONFLICT_MESSAGE, code="VIN_CONFLICT")
        signal = self.ctx.repo.detect_duplicate_image_hashes(
            photo_fingerprints(listing.photos),
            exclude_listing_id=listing.id,
        )
        if blocks_on_photo_overlap(signal):
            raise Conflict("Too many duplicate images detected with existing listings.", code="DUPLICATE_PHOTOS")

        try:
            updated = self.ctx.repo.update_listing(listing.id, {"status": STATUS_PENDING_REVIEW})
        except StoreConflictError as e:
            raise _store_conflict(e) from e
        if updated is None:
            raise NotFound("Listing not found.", code="LISTING_NOT_FOUND")

        self.ctx.audit("listing_submitted", entity_type="listing", entity_id=listing.id, actor=user.id)
        logger.info("listing_submitted id=%s", listing.id)
        return updated.to_dict()

    # public reads
    def search_listings(self, payload) -> dict:
        now = self.ctx.now()
        q = parse_search_query(payload, current_year=now.year)
        candidates = [item for item in self.ctx.repo.list_listings_by_status(STATUS_APPROVED) if _matches(item, q)]
        ranked = rank_listings(candidates, q.query, now=now)
        start = (q.page - 1) * q.page_size
        page_items = ranked[start:start + q.page_size]
        return {
            "items": [item.to_dict() for item in page_items],
            "total": len(ranked),
            "page": q.page,
            "page_size": q.page_size,
        }

    def get_public_listing(self, identifier: str) -> dict:
        listing = self.ctx.resolve_listing(identifier)
        if listing is None or listing.status != STATUS_APPROVED:
            raise NotFound("Listing not found.", code="LISTING_NOT_FOUND")
        return listing.to_dict()

    def track_contact_click(
        self,
        user: RequestUser | None,
        identifier: str,
        payload,
        *,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> dict:
        data = parse_contact_click(payload)
        listing = self.ctx.resolve_listing(identifier)
        if listing is None or listing.status != STATUS_APPROVED:
            raise NotFound("Listing not found.", code="LISTING_NOT_FOUND")
        user_id = None
        if user is not None:
            user_id = require_user(user).id
            self.ctx.sync_actor(user)
        self.ctx.repo.add_contact_event(
            listing_id=listing.id,
            channel=data["channel"],
            user_id=user_id,
            ip=(ip or None),
            user_agent=(user_agent or "")[:255] or None,
        )
        self.ctx.audit(f"contact_click_{data['channel']}", entity_type="listing", entity_id=listing.id, actor=user_id)
        return {"tracked": True, "listing_id": listing.id, "channel": data["channel"]}

    # favorites
    def add_favorite(self, user: RequestUser | None, listing_id: str) -> dict:
        user = require_user(user)
        self.ctx.sync_actor(user)
        listing = self.ctx.resolve_listing(listing_id)
        if listing is None or listing.status != STATUS_APPROVED:
            raise NotFound("Listing not found.", code="LISTING_NOT_FOUND")
        fav = self.ctx.repo.add_favorite(user.id, listing.id)
        return {"favorited": True, "listing_id": fav.listing_id}

    def remove_favorite(self, user: RequestUser | None, listing_id: str) -> dict:
        user = require_user(user)
        self.ctx.sync_actor(user)
        listing = self.ctx.resolve_listing(listing_id)
        if listing is None:
            return {"removed": False, "listing_id": listing_id}
        removed = self.ctx.repo.remove_favorite(user.id, listing.id)
        return {"removed": bool(removed), "listing_id": listing.id}

    def list_favorites(self, user: RequestUser | None) -> dict:
        user = require_user(user)
        self.ctx.sync_actor(user)
        items = []
        for fav in self.ctx.repo.list_favorites_by_user(user.id):
            listing = self.ctx.repo.get_listing_by_id(fav.listing_id)
            if listing is None or listing.status != STATUS_APPROVED:
                continue
            items.append({"favorited_at": fav.to_dict()["created_at"], "listing": listing.to_dict()})
        return {"items": items, "total": len(items)}

    def list_locations(self) -> dict:
        return {"items": [loc.to_dict() for loc in self.ctx.repo.list_locations()]}
