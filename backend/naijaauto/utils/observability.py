from __future__ import annotations

import hashlib
import json
import os
import time
import uuid
from datetime import datetime, timezone

import sentry_sdk
from flask import Flask, g, request
from sentry_sdk.integrations.flask import FlaskIntegration


REQUEST_ID_HEADER = "X-Request-Id"
MAX_REQUEST_ID_LENGTH = 128
SCRUBBED_HEADERS = frozenset({"authorization", "x-paystack-signature", "cookie", "set-cookie"})


def _hash_ip(ip: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{ip or ''}".encode("utf-8")).hexdigest()[:16]


def _sample_rate(raw: str | None) -> float:
    try:
        rate = float((raw or "0").strip())
    except ValueError:
        return 0.0
    return max(0.0, min(rate, 1.0))


def _slow_request_ms() -> float:
    try:
        return float((os.getenv("SLOW_REQUEST_MS") or "1500").strip())
    except ValueError:
        return 1500.0


def get_request_id() -> str:
    return getattr(g, "request_id", "")


def init_sentry(app: Flask, *, environment: str | None = None) -> bool:
    """Enable Sentry error reporting when ``SENTRY_DSN`` is set.

    Returns whether the SDK was initialised. Credentials and Paystack
    signatures are scrubbed, and webhook bodies are never attached.
    """
    dsn = (os.getenv("SENTRY_DSN") or "").strip()
    if not dsn:
        app.logger.info("sentry_disabled_no_dsn")
        return False
    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=(os.getenv("SENTRY_ENVIRONMENT") or environment or os.getenv("NAIJAAUTO_ENV") or "dev"),
            release=(os.getenv("GIT_SHA") or "unknown"),
            integrations=[FlaskIntegration()],
            send_default_pii=False,
            traces_sample_rate=_sample_rate(os.getenv("SENTRY_TRACES_SAMPLE_RATE")),
            before_send=_before_send_scrub,
        )
    except Exception as e:
        app.logger.warning("sentry_init_failed err=%s", e)
        return False
    app.logger.info("sentry_enabled")
    return True


def _before_send_scrub(event, hint):
    req = event.get("request") or {}
    headers = req.get("headers") or {}
    for key in list(headers.keys()):
        if key.lower() in SCRUBBED_HEADERS:
            headers[key] = "[REDACTED]"
    req["headers"] = headers
    if "/payments/" in str(req.get("url") or ""):
        req.pop("data", None)
    event["request"] = req
    return event


def _access_record(app: Flask, response, latency_ms: float | None) -> dict:
    forwarded = request.headers.get("X-Forwarded-For", request.remote_addr or "")
    return {
        "ts": datetime.now(timezone.utc).isoformat(),
        "request_id": get_request_id(),
        "method": request.method,
        "path": request.path,
        "endpoint": request.endpoint,
        "status": int(response.status_code),
        "latency_ms": latency_ms,
        "user_id": getattr(g, "auth_user_id", None),
        "role": getattr(g, "auth_role", None),
        "ip_hash": _hash_ip(forwarded, app.config.get("SECRET_KEY", "naijaauto")),
        "user_agent": (request.user_agent.string or "")[:180],
    }


def install_request_observers(app: Flask) -> None:
    slow_ms = _slow_request_ms()

    @app.before_request
    def _assign_request_id():
        rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
        if not rid or len(rid) > MAX_REQUEST_ID_LENGTH:
            rid = uuid.uuid4().hex
        g.request_id = rid
        g.request_started_at = time.perf_counter()

    @app.after_request
    def _log_api_request(response):
        response.headers[REQUEST_ID_HEADER] = get_request_id() or uuid.uuid4().hex
        if not request.path.startswith("/api/"):
            return response
        started = getattr(g, "request_started_at", None)
        latency_ms = round((time.perf_counter() - started) * 1000.0, 2) if started is not None else None
        record = _access_record(app, response, latency_ms)
        app.logger.info(json.dumps(record))
        if latency_ms is not None and latency_ms >= slow_ms:
            app.logger.warning("slow_request path=%s latency_ms=%s request_id=%s", request.path, latency_ms, record["request_id"])
        return response
