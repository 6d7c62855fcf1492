from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from naijaauto.services.common import RequestUser, ServiceContext, assert_role
from naijaauto.services.validation import parse_seller_onboarding
from naijaauto.store.records import ROLE_SELLER

logger = logging.getLogger(__name__)


CONTACT_CLICK_WINDOW_DAYS = 7


def onboarding_status(ctx: ServiceContext, user_id: str) -> dict:
    user = ctx.repo.get_user_by_id(user_id)
    profile = ctx.repo.get_seller_profile(user_id)
    dealer = ctx.repo.get_dealer_profile(user_id)
    seller_type = user.seller_type if user else None

    missing = []
    if not seller_type:
        missing.append("seller_type")
    if profile is None or not profile.full_name:
        missing.append("full_name")
    if profile is None or not profile.state:
        missing.append("state")
    if profile is None or not profile.city:
        missing.append("city")
    if seller_type == "dealer" and (dealer is None or not dealer.business_name):
        missing.append("business_name")

    return {
        "seller_type": seller_type,
        "full_name": profile.full_name if profile else None,
        "state": profile.state if profile else None,
        "city": profile.city if profile else None,
        "bio": profile.bio if profile else None,
        "business_name": dealer.business_name if dealer else None,
        "cac_number": dealer.cac_number if dealer else None,
        "address": dealer.address if dealer else None,
        "completed": not missing,
        "missing": missing,
    }


@dataclass
class SellerService:
    ctx: ServiceContext

    def get_seller_onboarding(self, user: RequestUser | None) -> dict:
        user = assert_role(user, ROLE_SELLER)
        self.ctx.sync_actor(user)
        return onboarding_status(self.ctx, user.id)

    def upsert_seller_onboarding(self, user: RequestUser | None, payload) -> dict:
        user = assert_role(user, ROLE_SELLER)
        data = parse_seller_onboarding(payload)
        self.ctx.sync_actor(user)

        self.ctx.repo.set_user_seller_type(user.id, data.seller_type)
        self.ctx.repo.upsert_seller_profile(
            user_id=user.id,
            full_name=data.full_name,
            state=data.state,
            city=data.city,
            bio=data.bio,
        )
        if data.seller_type == "dealer":
            self.ctx.repo.upsert_dealer_profile(
                user_id=user.id,
                business_name=data.business_name or "",
                cac_number=data.cac_number,
                address=data.address,
            )
        else:
            self.ctx.repo.delete_dealer_profile(user.id)

        self.ctx.audit(
            "seller_onboarding_updated",
            entity_type="user",
            entity_id=user.id,
            actor=user.id,
            seller_type=data.seller_type,
        )
        logger.info("seller_onboarding_updated user_id=%s seller_type=%s", user.id, data.seller_type)
        return onboarding_status(self.ctx, user.id)

    def get_seller_dashboard(self, user: RequestUser | None) -> dict:
        user = assert_role(user, ROLE_SELLER)
        self.ctx.sync_actor(user)
        listings = self.ctx.repo.list_seller_listings(user.id)
        notifications = self.ctx.repo.list_notifications_by_user(user.id)
        favorites = self.ctx.repo.list_favorites_by_user(user.id)
        since = self.ctx.now() - timedelta(days=CONTACT_CLICK_WINDOW_DAYS)
        clicks = self.ctx.repo.list_contact_events_since([item.id for item in listings], since)
        by_status: dict[str, int] = {}
        for item in listings:
            by_status[item.status] = by_status.get(item.status, 0) + 1
        return {
            "listings": [item.to_dict() for item in listings],
            "listing_counts": by_status,
            "notifications": [item.to_dict() for item in notifications],
            "favorites_count": len(favorites),
            "contact_clicks_7d": len(clicks),
            "onboarding": onboarding_status(self.ctx, user.id),
        }
