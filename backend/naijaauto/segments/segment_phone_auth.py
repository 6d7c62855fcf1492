from __future__ import annotations

from flask import Blueprint, jsonify

from naijaauto.segments.common import current_actor, get_marketplace, json_body

phone_auth_bp = Blueprint("phone_auth_bp", __name__, url_prefix="/api/auth/phone")


@phone_auth_bp.post("/send-otp")
def send_otp():
    return jsonify({"ok": True, **get_marketplace().send_phone_otp(current_actor(), json_body())})


@phone_auth_bp.post("/verify-otp")
def verify_otp():
    return jsonify({"ok": True, **get_marketplace().verify_phone_otp(current_actor(), json_body())})
