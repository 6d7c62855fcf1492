from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


ROLE_BUYER = "buyer"
ROLE_SELLER = "seller"
ROLE_MODERATOR = "moderator"
ROLE_SUPER_ADMIN = "super_admin"
ROLES = (ROLE_BUYER, ROLE_SELLER, ROLE_MODERATOR, ROLE_SUPER_ADMIN)
MODERATOR_ROLES = (ROLE_MODERATOR, ROLE_SUPER_ADMIN)

SELLER_TYPES = ("dealer", "private")

STATUS_DRAFT = "draft"
STATUS_PENDING_REVIEW = "pending_review"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_ARCHIVED = "archived"
STATUS_SOLD = "sold"
LISTING_STATUSES = (
    STATUS_DRAFT,
    STATUS_PENDING_REVIEW,
    STATUS_APPROVED,
    STATUS_REJECTED,
    STATUS_ARCHIVED,
    STATUS_SOLD,
)
# Listings in these states do not hold their VIN.
VIN_RELEASED_STATUSES = (STATUS_REJECTED, STATUS_ARCHIVED)

BODY_TYPES = ("car", "suv", "pickup")
FUEL_TYPES = ("petrol", "diesel", "hybrid", "electric")
TRANSMISSIONS = ("automatic", "manual")
CONTACT_CHANNELS = ("phone", "whatsapp")

PAYMENT_INITIATED = "initiated"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"

REVIEW_APPROVE = "approve"
REVIEW_REJECT = "reject"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class User:
    id: str
    role: str = ROLE_BUYER
    seller_type: str | None = None
    phone_verified: bool = False
    email: str | None = None
    phone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "seller_type": self.seller_type,
            "phone_verified": bool(self.phone_verified),
            "email": self.email,
            "phone": self.phone,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class SellerProfile:
    user_id: str
    full_name: str
    state: str
    city: str
    bio: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "state": self.state,
            "city": self.city,
            "bio": self.bio,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class DealerProfile:
    user_id: str
    business_name: str
    cac_number: str | None = None
    address: str | None = None
    verified: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "business_name": self.business_name,
            "cac_number": self.cac_number,
            "address": self.address,
            "verified": bool(self.verified),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class Listing:
    id: str
    seller_id: str
    seller_type: str
    title: str
    description: str
    price_ngn: int
    year: int
    make: str
    model: str
    body_type: str
    mileage_km: int
    transmission: str
    fuel_type: str
    vin: str
    state: str
    city: str
    lat: float
    lng: float
    slug: str
    photos: list[str] = field(default_factory=list)
    status: str = STATUS_DRAFT
    contact_phone: str | None = None
    contact_whatsapp: str | None = None
    is_featured: bool = False
    featured_until: datetime | None = None
    approved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "seller_type": self.seller_type,
            "status": self.status,
            "title": self.title,
            "description": self.description,
            "price_ngn": int(self.price_ngn),
            "year": int(self.year),
            "make": self.make,
            "model": self.model,
            "body_type": self.body_type,
            "mileage_km": int(self.mileage_km),
            "transmission": self.transmission,
            "fuel_type": self.fuel_type,
            "vin": self.vin,
            "state": self.state,
            "city": self.city,
            "lat": float(self.lat),
            "lng": float(self.lng),
            "photos": list(self.photos),
            "contact_phone": self.contact_phone,
            "contact_whatsapp": self.contact_whatsapp,
            "is_featured": bool(self.is_featured),
            "featured_until": _iso(self.featured_until),
            "approved_at": _iso(self.approved_at),
            "slug": self.slug,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class OtpVerification:
    id: str
    user_id: str
    phone: str
    code_hash: str
    expires_at: datetime
    attempts: int = 0
    max_attempts: int = 5
    verified_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class Favorite:
    user_id: str
    listing_id: str
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "listing_id": self.listing_id,
            "created_at": _iso(self.created_at),
        }


@dataclass
class FeaturedPackage:
    id: str
    code: str
    name: str
    duration_days: int
    amount_ngn: int
    is_active: bool = True
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "duration_days": int(self.duration_days),
            "amount_ngn": int(self.amount_ngn),
            "is_active": bool(self.is_active),
            "created_at": _iso(self.created_at),
        }


@dataclass
class PaymentTransaction:
    id: str
    listing_id: str
    seller_id: str
    package_code: str
    amount_ngn: int
    reference: str
    provider: str = "paystack"
    status: str = PAYMENT_INITIATED
    webhook_event_id: str | None = None
    provider_transaction_id: str | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "listing_id": self.listing_id,
            "seller_id": self.seller_id,
            "package_code": self.package_code,
            "amount_ngn": int(self.amount_ngn),
            "provider": self.provider,
            "reference": self.reference,
            "status": self.status,
            "webhook_event_id": self.webhook_event_id,
            "provider_transaction_id": self.provider_transaction_id,
            "created_at": _iso(self.created_at),
            "paid_at": _iso(self.paid_at),
        }


@dataclass
class ModerationReview:
    id: str
    listing_id: str
    moderator_id: str
    action: str
    reason: str | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "listing_id": self.listing_id,
            "moderator_id": self.moderator_id,
            "action": self.action,
            "reason": self.reason,
            "created_at": _iso(self.created_at),
        }


@dataclass
class ListingContactEvent:
    id: str
    listing_id: str
    channel: str
    user_id: str | None = None
    ip: str | None = None
    user_agent: str | None = None
    created_at: datetime | None = None


@dataclass
class Notification:
    id: str
    user_id: str
    title: str
    body: str
    read_at: datetime | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "body": self.body,
            "read_at": _iso(self.read_at),
            "created_at": _iso(self.created_at),
        }


@dataclass
class AuditLog:
    id: str
    action: str
    entity_type: str
    entity_id: str
    actor_user_id: str | None = None
    metadata: dict = field(default_factory=dict)
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_user_id": self.actor_user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "metadata": dict(self.metadata or {}),
            "created_at": _iso(self.created_at),
        }


@dataclass
class Location:
    state: str
    city: str
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"state": self.state, "city": self.city, "lat": self.lat, "lng": self.lng}


@dataclass
class DuplicateImageSignal:
    overlap_count: int = 0
    listing_ids: list[str] = field(default_factory=list)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from stores that drop tzinfo."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
