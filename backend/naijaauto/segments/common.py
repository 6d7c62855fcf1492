from __future__ import annotations

from flask import current_app, g, request

from naijaauto.services.common import RequestUser
from naijaauto.services.errors import ValidationFailed
from naijaauto.utils.jwt_utils import decode_token, get_bearer_token, request_user_from_claims


MARKETPLACE_EXTENSION_KEY = "naijaauto.marketplace"


def get_marketplace():
    return current_app.extensions[MARKETPLACE_EXTENSION_KEY]


def current_actor() -> RequestUser | None:
    if hasattr(g, "actor"):
        return g.actor
    token = get_bearer_token(request.headers.get("Authorization", ""))
    actor = request_user_from_claims(decode_token(token)) if token else None
    g.actor = actor
    g.auth_user_id = actor.id if actor else None
    g.auth_role = actor.role if actor else None
    return actor


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        if request.data:
            raise ValidationFailed("Request body must be valid JSON.", code="INVALID_JSON")
        return {}
    if not isinstance(payload, dict):
        raise ValidationFailed("Request body must be a JSON object.", code="INVALID_JSON")
    return payload


def client_ip() -> str:
    forwarded = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return forwarded or (request.remote_addr or "")
