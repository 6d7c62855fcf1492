from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from naijaauto.segments.common import current_actor, get_marketplace, json_body
from naijaauto.utils.observability import get_request_id

payments_bp = Blueprint("payments_bp", __name__, url_prefix="/api")


@payments_bp.get("/featured/packages")
def featured_packages():
    return jsonify({"ok": True, **get_marketplace().list_featured_packages()})


@payments_bp.post("/featured/checkout")
def featured_checkout():
    result = get_marketplace().create_featured_checkout(current_actor(), json_body())
    return jsonify({"ok": True, **result}), 201


@payments_bp.post("/payments/paystack/webhook")
def paystack_webhook():
    raw = request.get_data(cache=True) or b""
    signature = (request.headers.get("X-Paystack-Signature") or "").strip() or None
    result = get_marketplace().handle_paystack_webhook(raw, signature)
    current_app.logger.info(
        "paystack_webhook_handled duplicate=%s request_id=%s",
        result.get("duplicate"),
        get_request_id(),
    )
    return jsonify({"ok": True, **result})


@payments_bp.get("/admin/featured-packages")
def admin_featured_packages():
    return jsonify({"ok": True, **get_marketplace().list_featured_packages_for_admin(current_actor())})


@payments_bp.patch("/admin/featured-packages/<code>")
def admin_update_featured_package(code: str):
    pkg = get_marketplace().update_featured_package_for_admin(current_actor(), code, json_body())
    return jsonify({"ok": True, "package": pkg})
