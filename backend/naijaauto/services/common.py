from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from naijaauto.services.errors import Forbidden, NotFound, Unauthenticated
from naijaauto.services.validation import UUID_PATTERN
from naijaauto.store.records import ROLES, Listing, User, utcnow
from naijaauto.store.repository import Repository


FORBIDDEN_MESSAGE = "You do not have permission for this action."


@dataclass(frozen=True)
class RequestUser:
    """Caller identity as asserted by the authentication layer."""

    id: str
    role: str
    seller_type: str | None = None
    phone_verified: bool = False
    email: str | None = None


def require_user(user: RequestUser | None) -> RequestUser:
    if user is None or not user.id:
        raise Unauthenticated("Authentication required.")
    if user.role not in ROLES:
        raise Forbidden(FORBIDDEN_MESSAGE)
    return user


def assert_role(user: RequestUser | None, *roles: str) -> RequestUser:
    user = require_user(user)
    if user.role not in roles:
        raise Forbidden(FORBIDDEN_MESSAGE)
    return user


@dataclass
class ServiceContext:
    """Collaborators shared by every service in one marketplace instance."""

    repo: Repository
    clock: Callable[[], datetime] = utcnow

    def now(self) -> datetime:
        return self.clock()

    def sync_actor(self, user: RequestUser) -> User:
        """Upsert the caller so the stored record reflects the latest claims."""
        return self.repo.upsert_user(
            user_id=user.id,
            role=user.role,
            seller_type=user.seller_type,
            phone_verified=bool(user.phone_verified),
            email=user.email,
        )

    def resolve_listing(self, identifier: str) -> Listing | None:
        value = (identifier or "").strip()
        if not value:
            return None
        if UUID_PATTERN.match(value):
            return self.repo.get_listing_by_id(value.lower())
        return self.repo.get_listing_by_slug(value.lower())

    def require_listing(self, identifier: str) -> Listing:
        listing = self.resolve_listing(identifier)
        if listing is None:
            raise NotFound("Listing not found.", code="LISTING_NOT_FOUND")
        return listing

    def audit(self, action: str, *, entity_type: str, entity_id: str, actor: str | None = None, **metadata) -> None:
        self.repo.add_audit_log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor,
            metadata=metadata,
        )
