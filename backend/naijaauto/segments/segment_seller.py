from __future__ import annotations

from flask import Blueprint, jsonify

from naijaauto.segments.common import current_actor, get_marketplace, json_body

seller_bp = Blueprint("seller_bp", __name__, url_prefix="/api/seller")


@seller_bp.get("/profile")
def get_profile():
    return jsonify({"ok": True, "profile": get_marketplace().get_seller_onboarding(current_actor())})


@seller_bp.put("/profile")
def put_profile():
    return jsonify({"ok": True, "profile": get_marketplace().upsert_seller_onboarding(current_actor(), json_body())})


@seller_bp.get("/dashboard")
def dashboard():
    return jsonify({"ok": True, **get_marketplace().get_seller_dashboard(current_actor())})
