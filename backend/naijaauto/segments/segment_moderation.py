from __future__ import annotations

from flask import Blueprint, jsonify

from naijaauto.segments.common import current_actor, get_marketplace, json_body

moderation_bp = Blueprint("moderation_bp", __name__, url_prefix="/api")


@moderation_bp.get("/admin/moderation-queue")
def moderation_queue():
    return jsonify({"ok": True, **get_marketplace().get_moderation_queue(current_actor())})


@moderation_bp.get("/admin/moderation-sla")
def moderation_sla():
    return jsonify({"ok": True, **get_marketplace().get_moderation_sla_dashboard(current_actor())})


@moderation_bp.post("/moderation/listings/<identifier>/approve")
def approve(identifier: str):
    listing = get_marketplace().approve_listing(current_actor(), identifier, json_body())
    return jsonify({"ok": True, "listing": listing})


@moderation_bp.post("/moderation/listings/<identifier>/reject")
def reject(identifier: str):
    listing = get_marketplace().reject_listing(current_actor(), identifier, json_body())
    return jsonify({"ok": True, "listing": listing})
