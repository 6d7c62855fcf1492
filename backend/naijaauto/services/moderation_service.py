"""Moderation decisions and SLA analytics over the review queue."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from naijaauto.services.common import RequestUser, ServiceContext, assert_role
from naijaauto.services.errors import Conflict, ValidationFailed
from naijaauto.services.validation import parse_moderation_decision
from naijaauto.store.records import (
    MODERATOR_ROLES,
    REVIEW_APPROVE,
    REVIEW_REJECT,
    STATUS_APPROVED,
    STATUS_PENDING_REVIEW,
    STATUS_REJECTED,
    Listing,
    ModerationReview,
)

logger = logging.getLogger(__name__)


HIGH_RISK_MINUTES = 90
MEDIUM_RISK_MINUTES = 60
BREACH_MINUTES = 120
TREND_DAYS = 7


def age_minutes(created_at: datetime, now: datetime) -> int:
    return max(0, math.floor((now - created_at).total_seconds() / 60.0))


def sla_risk(minutes: int) -> str:
    if minutes >= HIGH_RISK_MINUTES:
        return "high"
    if minutes >= MEDIUM_RISK_MINUTES:
        return "medium"
    return "low"


def queue_items(listings: list[Listing], now: datetime) -> list[dict]:
    items = []
    for listing in listings:
        minutes = age_minutes(listing.created_at, now)
        items.append({
            "listing": listing.to_dict(),
            "age_minutes": minutes,
            "sla_risk": sla_risk(minutes),
        })
    return items


def _age_bucket(minutes: int) -> str:
    if minutes < 60:
        return "under_60"
    if minutes < 120:
        return "between_60_and_119"
    if minutes < 180:
        return "between_120_and_179"
    return "over_180"


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_sla_dashboard(queue: list[Listing], reviews: list[ModerationReview], *, now: datetime) -> dict:
    """Summarize queue aging and recent review throughput.

    ``reviews`` must cover at least the last seven days. Every pending item
    lands in exactly one distribution bucket, so the buckets always sum to the
    pending total.
    """
    items = queue_items(queue, now)
    ages = [item["age_minutes"] for item in items]

    distribution = {"under_60": 0, "between_60_and_119": 0, "between_120_and_179": 0, "over_180": 0}
    risk = {"high": 0, "medium": 0, "low": 0}
    for item in items:
        distribution[_age_bucket(item["age_minutes"])] += 1
        risk[item["sla_risk"]] += 1

    day_ago = now - timedelta(hours=24)
    week_ago = now - timedelta(days=7)
    metrics = {
        "total_pending": len(items),
        "high_risk": risk["high"],
        "medium_risk": risk["medium"],
        "low_risk": risk["low"],
        "breached_over_120": sum(1 for minutes in ages if minutes >= BREACH_MINUTES),
        "average_age_minutes": _round_half_up(sum(ages) / len(ages)) if ages else 0,
        "oldest_age_minutes": max(ages) if ages else 0,
        "reviews_last_24h": sum(1 for review in reviews if review.created_at >= day_ago),
        "reviews_last_7d": sum(1 for review in reviews if review.created_at >= week_ago),
    }

    today = now.date()
    trend = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        approved = 0
        rejected = 0
        for review in reviews:
            if review.created_at.date() != day:
                continue
            if review.action == REVIEW_APPROVE:
                approved += 1
            elif review.action == REVIEW_REJECT:
                rejected += 1
        trend.append({"date": day.isoformat(), "approved": approved, "rejected": rejected, "total": approved + rejected})

    return {
        "generated_at": now.isoformat(),
        "queue": items,
        "distribution": distribution,
        "metrics": metrics,
        "trend": trend,
    }


@dataclass
class ModerationService:
    ctx: ServiceContext

    def _pending_listing(self, identifier: str) -> Listing:
        listing = self.ctx.require_listing(identifier)
        if listing.status != STATUS_PENDING_REVIEW:
            raise Conflict("Listing is not awaiting moderation.", code="NOT_PENDING_REVIEW")
        return listing

    def approve_listing(self, user: RequestUser | None, identifier: str, payload=None) -> dict:
        user = assert_role(user, *MODERATOR_ROLES)
        data = parse_moderation_decision(payload or {})
        self.ctx.sync_actor(user)
        listing = self._pending_listing(identifier)

        updated = self.ctx.repo.update_listing(
            listing.id,
            {"status": STATUS_APPROVED, "approved_at": self.ctx.now()},
        )
        self.ctx.repo.add_moderation_review(
            listing_id=listing.id,
            moderator_id=user.id,
            action=REVIEW_APPROVE,
            reason=data.get("reason"),
        )
        self.ctx.repo.add_notification(
            user_id=listing.seller_id,
            title="Listing approved",
            body=f"{listing.title} is now live on NaijaAuto.",
        )
        self.ctx.audit("listing_approved", entity_type="listing", entity_id=listing.id, actor=user.id, reason=data.get("reason"))
        logger.info("listing_approved id=%s moderator_id=%s", listing.id, user.id)
        return updated.to_dict()

    def reject_listing(self, user: RequestUser | None, identifier: str, payload=None) -> dict:
        user = assert_role(user, *MODERATOR_ROLES)
        data = parse_moderation_decision(payload or {})
        reason = data.get("reason")
        if not reason:
            raise ValidationFailed(
                "Rejection reason is required.",
                code="REASON_REQUIRED",
                fields=[{"field": "reason", "message": "Rejection reason is required."}],
            )
        self.ctx.sync_actor(user)
        listing = self._pending_listing(identifier)

        updated = self.ctx.repo.update_listing(listing.id, {"status": STATUS_REJECTED})
        self.ctx.repo.add_moderation_review(
            listing_id=listing.id,
            moderator_id=user.id,
            action=REVIEW_REJECT,
            reason=reason,
        )
        self.ctx.repo.add_notification(
            user_id=listing.seller_id,
            title="Listing rejected",
            body=f"Listing rejected: {reason}",
        )
        self.ctx.audit("listing_rejected", entity_type="listing", entity_id=listing.id, actor=user.id, reason=reason)
        logger.info("listing_rejected id=%s moderator_id=%s", listing.id, user.id)
        return updated.to_dict()

    def get_moderation_queue(self, user: RequestUser | None) -> dict:
        assert_role(user, *MODERATOR_ROLES)
        items = queue_items(self.ctx.repo.get_moderation_queue(), self.ctx.now())
        return {"items": items, "total": len(items)}

    def get_moderation_sla_dashboard(self, user: RequestUser | None) -> dict:
        assert_role(user, *MODERATOR_ROLES)
        now = self.ctx.now()
        queue = self.ctx.repo.get_moderation_queue()
        reviews = self.ctx.repo.list_moderation_reviews_since(now - timedelta(days=TREND_DAYS))
        return build_sla_dashboard(queue, reviews, now=now)
