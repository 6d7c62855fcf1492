from __future__ import annotations

import hashlib
import hmac
import re
import secrets


_SLUG_STRIP = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACES = re.compile(r"\s+")
_SLUG_DASHES = re.compile(r"-+")


def sha256_hex(value: str) -> str:
    return hashlib.sha256((value or "").encode("utf-8")).hexdigest()


def hmac_sha512_hex(secret: str, payload: bytes | str) -> str:
    body = payload.encode("utf-8") if isinstance(payload, str) else (payload or b"")
    return hmac.new((secret or "").encode("utf-8"), body, hashlib.sha512).hexdigest()


def safe_compare_hex(left: str, right: str) -> bool:
    """Constant-time comparison of two hex digests of equal length."""
    a = (left or "").strip().lower()
    b = (right or "").strip().lower()
    if not a or not b or len(a) != len(b):
        return False
    return hmac.compare_digest(a.encode("ascii", "ignore"), b.encode("ascii", "ignore"))


def generate_otp_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def create_slug(value: str) -> str:
    slug = (value or "").strip().lower()
    slug = _SLUG_STRIP.sub("", slug)
    slug = _SLUG_SPACES.sub("-", slug)
    slug = _SLUG_DASHES.sub("-", slug)
    return slug.strip("-")
