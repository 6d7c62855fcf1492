from __future__ import annotations

from flask import Blueprint, jsonify, request

from naijaauto.segments.common import client_ip, current_actor, get_marketplace, json_body

listings_bp = Blueprint("listings_bp", __name__, url_prefix="/api")


@listings_bp.get("/listings")
def search_listings():
    result = get_marketplace().search_listings(request.args.to_dict())
    return jsonify({"ok": True, **result})


@listings_bp.post("/listings")
def create_listing():
    listing = get_marketplace().create_listing(current_actor(), json_body())
    return jsonify({"ok": True, "listing": listing}), 201


@listings_bp.get("/listings/<identifier>")
def get_listing(identifier: str):
    return jsonify({"ok": True, "listing": get_marketplace().get_public_listing(identifier)})


@listings_bp.patch("/listings/<identifier>")
def update_listing(identifier: str):
    listing = get_marketplace().update_listing(current_actor(), identifier, json_body())
    return jsonify({"ok": True, "listing": listing})


@listings_bp.post("/listings/<identifier>/submit")
def submit_listing(identifier: str):
    listing = get_marketplace().submit_listing(current_actor(), identifier)
    return jsonify({"ok": True, "listing": listing})


@listings_bp.post("/listings/<identifier>/contact-click")
def contact_click(identifier: str):
    result = get_marketplace().track_contact_click(
        current_actor(),
        identifier,
        json_body(),
        ip=client_ip(),
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify({"ok": True, **result})


@listings_bp.get("/locations")
def list_locations():
    return jsonify({"ok": True, **get_marketplace().list_locations()})


@listings_bp.get("/favorites")
def list_favorites():
    return jsonify({"ok": True, **get_marketplace().list_favorites(current_actor())})


@listings_bp.post("/favorites/<listing_id>")
def add_favorite(listing_id: str):
    return jsonify({"ok": True, **get_marketplace().add_favorite(current_actor(), listing_id)})


@listings_bp.delete("/favorites/<listing_id>")
def remove_favorite(listing_id: str):
    return jsonify({"ok": True, **get_marketplace().remove_favorite(current_actor(), listing_id)})
