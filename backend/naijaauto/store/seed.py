from __future__ import annotations

import logging

from naijaauto.data.locations import LAUNCH_LOCATIONS
from naijaauto.store.repository import Repository

logger = logging.getLogger(__name__)


DEFAULT_FEATURED_PACKAGES = (
    {"code": "feature_7_days", "name": "Featured - 7 Days", "duration_days": 7, "amount_ngn": 25000},
    {"code": "feature_14_days", "name": "Featured - 14 Days", "duration_days": 14, "amount_ngn": 45000},
    {"code": "feature_30_days", "name": "Featured - 30 Days", "duration_days": 30, "amount_ngn": 80000},
)


def seed_marketplace(repo: Repository) -> dict:
    """Insert launch locations and featured packages that are not yet present.

    Safe to run on every boot: existing rows are left untouched, so admin edits
    to package prices or activation survive restarts.
    """
    locations_added = repo.seed_locations(list(LAUNCH_LOCATIONS))
    packages_added = 0
    for spec in DEFAULT_FEATURED_PACKAGES:
        if repo.get_featured_package_by_code(spec["code"], include_inactive=True) is not None:
            continue
        repo.create_featured_package(**spec)
        packages_added += 1
    logger.info(
        "marketplace_seeded store=%s locations_added=%s packages_added=%s",
        repo.name,
        locations_added,
        packages_added,
    )
    return {"locations_added": locations_added, "packages_added": packages_added}
