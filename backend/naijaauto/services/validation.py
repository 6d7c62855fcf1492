"""Declarative payload validation.

Each schema is a list of ``_Field`` specs. ``_parse`` walks the specs, collects
every field error and raises a single :class:`ValidationFailed` whose message
is the first error and whose ``fields`` carries all of them. Business logic
only ever sees cleaned values.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from naijaauto.services.errors import ValidationFailed
from naijaauto.services.integrity import VIN_LENGTH, normalize_vin
from naijaauto.store.records import BODY_TYPES, CONTACT_CHANNELS, FUEL_TYPES, SELLER_TYPES, TRANSMISSIONS


MIN_YEAR = 1980
MIN_PRICE_NGN = 500_000
MAX_PRICE_NGN = 500_000_000
MAX_MILEAGE_KM = 2_000_000
MAX_PHOTOS = 30
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_MISSING = object()


@dataclass(frozen=True)
class _Field:
    key: str
    kind: str = "text"
    required: bool = True
    min_value: float | None = None
    max_value: float | None = None
    choices: tuple[str, ...] = ()
    coerce: bool = False
    blank_to_none: bool = False
    exact_length: int | None = None


def _text(value: Any) -> str:
    return str(value or "").strip()


def _as_int(value: Any, *, coerce: bool) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if coerce and isinstance(value, str):
        raw = value.strip()
        if re.fullmatch(r"[+-]?\d+", raw):
            return int(raw)
    return None


def _as_float(value: Any, *, coerce: bool) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if coerce and isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in ("1", "true", "yes", "on"):
            return True
        if raw in ("0", "false", "no", "off"):
            return False
    return None


def _is_http_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _check_bounds(spec: _Field, value: float, noun: str = "") -> str | None:
    if spec.min_value is not None and value < spec.min_value:
        return f"{spec.key} must be at least {_num(spec.min_value)}{noun}."
    if spec.max_value is not None and value > spec.max_value:
        return f"{spec.key} must be at most {_num(spec.max_value)}{noun}."
    return None


def _clean_value(spec: _Field, raw: Any) -> tuple[Any, str | None]:
    if spec.kind == "text" or spec.kind == "vin":
        if not isinstance(raw, str):
            return None, f"{spec.key} must be a string."
        value = normalize_vin(raw) if spec.kind == "vin" else raw.strip()
        if spec.exact_length is not None and len(value) != spec.exact_length:
            return None, f"{spec.key} must be exactly {spec.exact_length} characters."
        return value, _check_bounds(spec, len(value), " characters")
    if spec.kind == "int":
        value = _as_int(raw, coerce=spec.coerce)
        if value is None:
            return None, f"{spec.key} must be a whole number."
        return value, _check_bounds(spec, value)
    if spec.kind == "float":
        value = _as_float(raw, coerce=spec.coerce)
        if value is None:
            return None, f"{spec.key} must be a number."
        return value, _check_bounds(spec, value)
    if spec.kind == "enum":
        value = _text(raw).lower() if isinstance(raw, str) else ""
        if value not in spec.choices:
            return None, f"{spec.key} must be one of: {', '.join(spec.choices)}."
        return value, None
    if spec.kind == "bool":
        value = _as_bool(raw)
        if value is None:
            return None, f"{spec.key} must be true or false."
        return value, None
    if spec.kind == "urls":
        if not isinstance(raw, (list, tuple)):
            return None, f"{spec.key} must be a list of URLs."
        if not all(_is_http_url(item) for item in raw):
            return None, f"{spec.key} must contain valid http(s) URLs."
        value = [item.strip() for item in raw]
        return value, _check_bounds(spec, len(value), " items")
    raise ValueError(f"unknown field kind: {spec.kind}")


def _parse(fields: tuple[_Field, ...], payload: Any, *, partial: bool = False) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationFailed("Request body must be a JSON object.", fields=[{"field": "", "message": "Expected an object."}])
    cleaned: dict = {}
    errors: list[dict] = []
    for spec in fields:
        raw = payload.get(spec.key, _MISSING)
        if spec.blank_to_none and isinstance(raw, str) and not raw.strip():
            raw = None
        if raw is _MISSING or raw is None:
            if spec.required and not partial:
                errors.append({"field": spec.key, "message": f"{spec.key} is required."})
            elif raw is None and spec.blank_to_none:
                cleaned[spec.key] = None
            continue
        value, error = _clean_value(spec, raw)
        if error:
            errors.append({"field": spec.key, "message": error})
            continue
        cleaned[spec.key] = value
    if errors:
        raise ValidationFailed(errors[0]["message"], fields=errors)
    return cleaned


def _listing_fields(current_year: int) -> tuple[_Field, ...]:
    return (
        _Field("title", min_value=10, max_value=120),
        _Field("description", min_value=40, max_value=5000),
        _Field("price_ngn", kind="int", min_value=MIN_PRICE_NGN, max_value=MAX_PRICE_NGN),
        _Field("year", kind="int", min_value=MIN_YEAR, max_value=current_year + 1),
        _Field("make", min_value=2, max_value=50),
        _Field("model", min_value=1, max_value=50),
        _Field("body_type", kind="enum", choices=BODY_TYPES),
        _Field("mileage_km", kind="int", min_value=0, max_value=MAX_MILEAGE_KM),
        _Field("transmission", kind="enum", choices=TRANSMISSIONS),
        _Field("fuel_type", kind="enum", choices=FUEL_TYPES),
        _Field("vin", kind="vin", exact_length=VIN_LENGTH),
        _Field("state", min_value=2, max_value=40),
        _Field("city", min_value=2, max_value=50),
        _Field("lat", kind="float", min_value=-90, max_value=90),
        _Field("lng", kind="float", min_value=-180, max_value=180),
        _Field("photos", kind="urls", min_value=1, max_value=MAX_PHOTOS),
        _Field("contact_phone", required=False, min_value=10, max_value=20),
        _Field("contact_whatsapp", required=False, min_value=10, max_value=20),
    )


def parse_create_listing(payload: Any, *, current_year: int) -> dict:
    return _parse(_listing_fields(current_year), payload)


def parse_update_listing(payload: Any, *, current_year: int) -> dict:
    return _parse(_listing_fields(current_year), payload, partial=True)


@dataclass(frozen=True)
class ListingSearchQuery:
    query: str | None = None
    make: str | None = None
    model: str | None = None
    state: str | None = None
    city: str | None = None
    body_type: str | None = None
    min_price_ngn: int | None = None
    max_price_ngn: int | None = None
    min_year: int | None = None
    max_year: int | None = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


def parse_search_query(payload: Any, *, current_year: int) -> ListingSearchQuery:
    fields = (
        _Field("query", required=False, blank_to_none=True),
        _Field("make", required=False, blank_to_none=True),
        _Field("model", required=False, blank_to_none=True),
        _Field("state", required=False, blank_to_none=True),
        _Field("city", required=False, blank_to_none=True),
        _Field("body_type", kind="enum", required=False, blank_to_none=True, choices=BODY_TYPES),
        _Field("min_price_ngn", kind="int", required=False, blank_to_none=True, coerce=True, min_value=1),
        _Field("max_price_ngn", kind="int", required=False, blank_to_none=True, coerce=True, min_value=1),
        _Field("min_year", kind="int", required=False, blank_to_none=True, coerce=True, min_value=MIN_YEAR),
        _Field("max_year", kind="int", required=False, blank_to_none=True, coerce=True, max_value=current_year + 1),
        _Field("page", kind="int", required=False, blank_to_none=True, coerce=True, min_value=1),
        _Field("page_size", kind="int", required=False, blank_to_none=True, coerce=True, min_value=1, max_value=MAX_PAGE_SIZE),
    )
    cleaned = _parse(fields, payload)
    if cleaned.get("page") is None:
        cleaned["page"] = 1
    if cleaned.get("page_size") is None:
        cleaned["page_size"] = DEFAULT_PAGE_SIZE
    return ListingSearchQuery(**cleaned)


def parse_send_otp(payload: Any) -> dict:
    return _parse((_Field("phone", min_value=10, max_value=20),), payload)


def parse_verify_otp(payload: Any) -> dict:
    return _parse(
        (
            _Field("phone", min_value=10, max_value=20),
            _Field("code", exact_length=6),
        ),
        payload,
    )


def parse_contact_click(payload: Any) -> dict:
    return _parse((_Field("channel", kind="enum", choices=CONTACT_CHANNELS),), payload)


def parse_featured_checkout(payload: Any) -> dict:
    cleaned = _parse(
        (
            _Field("listing_id"),
            _Field("package_code", min_value=2, max_value=30),
        ),
        payload,
    )
    if not UUID_PATTERN.match(cleaned["listing_id"]):
        raise ValidationFailed(
            "listing_id must be a valid id.",
            fields=[{"field": "listing_id", "message": "listing_id must be a valid id."}],
        )
    return cleaned


def parse_moderation_decision(payload: Any) -> dict:
    return _parse((_Field("reason", required=False, min_value=5, max_value=500),), payload)


@dataclass(frozen=True)
class SellerOnboardingInput:
    seller_type: str
    full_name: str
    state: str
    city: str
    bio: str | None = None
    business_name: str | None = None
    cac_number: str | None = None
    address: str | None = None


def parse_seller_onboarding(payload: Any) -> SellerOnboardingInput:
    cleaned = _parse(
        (
            _Field("seller_type", kind="enum", choices=SELLER_TYPES),
            _Field("full_name", min_value=2, max_value=100),
            _Field("state", min_value=2, max_value=40),
            _Field("city", min_value=2, max_value=50),
            _Field("bio", required=False, blank_to_none=True, max_value=500),
            _Field("business_name", required=False, blank_to_none=True, max_value=120),
            _Field("cac_number", required=False, blank_to_none=True, max_value=80),
            _Field("address", required=False, blank_to_none=True, max_value=200),
        ),
        payload,
    )
    if cleaned["seller_type"] == "dealer" and not cleaned.get("business_name"):
        message = "Business name is required for dealer accounts."
        raise ValidationFailed(message, fields=[{"field": "business_name", "message": message}])
    return SellerOnboardingInput(**cleaned)


def parse_featured_package_update(payload: Any) -> dict:
    cleaned = _parse(
        (
            _Field("name", required=False, min_value=3, max_value=100),
            _Field("duration_days", kind="int", required=False, min_value=1, max_value=90),
            _Field("amount_ngn", kind="int", required=False, min_value=1000, max_value=500_000_000),
            _Field("is_active", kind="bool", required=False),
        ),
        payload,
    )
    if not cleaned:
        raise ValidationFailed("At least one field is required for update.")
    return cleaned
