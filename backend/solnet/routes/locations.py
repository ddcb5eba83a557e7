# Overview: Flask API routes for shop locations (branches).

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..models import Location
from ..services import location_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, error_response


LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "code", "address", "city", "phone", "email", "timezone", "is_active"},
    required_on_create={"name", "code"},
)

locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.get("/active")
def list_active_locations_route():
    """Public: branch picker on the login and tracking pages."""
    locations = location_service.list_locations(active_only=True)
    return jsonify({"items": [{"id": l.id, "name": l.name, "code": l.code} for l in locations]})


@locations_bp.get("")
@require_auth
@require_permission("VIEW_WORKERS")
def list_locations_route():
    active_only = request.args.get("active_only", "").lower() in {"1", "true", "yes"}
    locations = location_service.list_locations(active_only=active_only)
    return jsonify({"items": [l.to_dict() for l in locations], "count": len(locations)})


@locations_bp.post("")
@require_auth
@require_permission("MANAGE_LOCATIONS")
def create_location_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=False)
        location = location_service.create_location(patch)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create location")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"location": location.to_dict()}), 201


@locations_bp.get("/<int:location_id>")
@require_auth
@require_permission("VIEW_WORKERS")
def get_location_route(location_id: int):
    try:
        location = location_service.get_location(location_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"location": location.to_dict()})


@locations_bp.put("/<int:location_id>")
@require_auth
@require_permission("MANAGE_LOCATIONS")
def update_location_route(location_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=True)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        location = location_service.update_location(location_id, patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"location": location.to_dict()})


@locations_bp.delete("/<int:location_id>")
@require_auth
@require_permission("MANAGE_LOCATIONS")
def deactivate_location_route(location_id: int):
    try:
        location = location_service.deactivate_location(location_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"location": location.to_dict(), "message": "Location deactivated"})
