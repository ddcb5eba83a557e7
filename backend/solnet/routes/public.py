# Overview: Unauthenticated routes used by the customer-facing site; tracking, feedback and listings.

"""
Public routes (no auth)

Everything here is reachable by anyone holding a receipt, so responses
are limited to customer-safe fields.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service, device_service, inventory_service, settings_service, tracking_service
from ..validation import error_response


public_bp = Blueprint("public", __name__, url_prefix="/api/public")


@public_bp.get("/track-device/<code>")
def track_device_route(code: str):
    try:
        view = tracking_service.track(code)
    except ValueError as e:
        return error_response(e)
    return jsonify({"device": view})


@public_bp.post("/feedback")
def submit_feedback_route():
    """Body: {"receipt_number": "...", "rating": 1-5, "comment": "...", "would_recommend": bool}"""
    data = request.get_json(silent=True) or {}
    code = (data.get("receipt_number") or "").strip()
    if not code:
        return jsonify({"error": "receipt_number is required"}), 400

    device = tracking_service.find_by_tracking_code(code)
    if not device:
        return jsonify({"error": "Device not found. Please check your tracking code."}), 404

    try:
        feedback = device_service.add_feedback(
            device,
            rating=data.get("rating"),
            comment=data.get("comment"),
            would_recommend=data.get("would_recommend"),
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record feedback")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Thank you for your feedback", "rating": feedback.rating}), 201


@public_bp.get("/service-types")
def public_service_types_route():
    services = catalog_service.list_public_service_types()
    return jsonify({"items": [s.to_dict() for s in services]})


@public_bp.get("/inventory")
def public_inventory_route():
    items = inventory_service.list_public_items()
    return jsonify({"items": [i.to_public_dict() for i in items]})


@public_bp.get("/accessories")
def public_accessories_route():
    items = inventory_service.list_public_items(category=inventory_service.ACCESSORY_CATEGORY)
    return jsonify({"items": [i.to_public_dict() for i in items]})


@public_bp.get("/business-info")
def business_info_route():
    profile = settings_service.get_business_profile()
    if profile is None:
        return jsonify({"business": None})
    return jsonify({"business": profile.to_public_dict()})
