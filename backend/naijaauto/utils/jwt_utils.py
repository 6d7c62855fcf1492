import os
import time
import logging
from typing import Optional, Dict, Any, Tuple

import jwt
from flask import current_app, has_app_context

from naijaauto.services.common import RequestUser
from naijaauto.store.records import ROLES

logger = logging.getLogger(__name__)


def _secret() -> str:
    if has_app_context():
        configured = current_app.config.get("SECRET_KEY")
        if configured:
            return str(configured)
    return os.getenv("SECRET_KEY") or "dev-secret"


def create_access_token(
    user_id: str,
    *,
    role: str,
    seller_type: Optional[str] = None,
    phone_verified: bool = False,
    email: Optional[str] = None,
    ttl_seconds: int = 60 * 60 * 24 * 7,
) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "role": role,
        "seller_type": seller_type,
        "phone_verified": bool(phone_verified),
        "email": email,
        "iat": now,
        "exp": now + ttl_seconds,
        "type": "access",
    }
    return jwt.encode(payload, _secret(), algorithm="HS256")


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, _secret(), algorithms=["HS256"])
    except jwt.PyJWTError:
        return None


def parse_auth_header(auth_header: str) -> Tuple[Optional[str], Optional[str]]:
    if not auth_header:
        return None, None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1], "bearer"
    return None, None


def get_bearer_token(auth_header: str) -> Optional[str]:
    token, _scheme = parse_auth_header(auth_header)
    return token


def request_user_from_claims(payload: Optional[Dict[str, Any]]) -> Optional[RequestUser]:
    if not payload:
        return None
    sub = str(payload.get("sub") or "").strip()
    role = str(payload.get("role") or "").strip().lower()
    if not sub or role not in ROLES:
        logger.warning("jwt_claims_rejected sub_present=%s role=%s", bool(sub), role)
        return None
    seller_type = str(payload.get("seller_type") or "").strip().lower() or None
    return RequestUser(
        id=sub,
        role=role,
        seller_type=seller_type,
        phone_verified=bool(payload.get("phone_verified")),
        email=(str(payload.get("email") or "").strip() or None),
    )
