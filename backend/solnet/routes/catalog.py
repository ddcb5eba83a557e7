# Overview: Flask API routes for the repair catalog; one set of CRUD routes per entity.

"""
Catalog routes

    /api/device-types
    /api/brands
    /api/models               ?brand_id=&device_type_id=
    /api/service-types
    /api/predefined-problems

Reads need VIEW_DEVICES (the intake form uses them); writes need
MANAGE_CATALOG. DELETE deactivates.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..models import Brand, DeviceModel, DeviceType, PredefinedProblem, ServiceType
from ..services import catalog_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_amounts, enforce_non_negative, error_response


CATALOG_POLICIES = {
    DeviceType: ModelValidationPolicy(
        writable_fields={"name", "description", "is_active"},
        required_on_create={"name"},
    ),
    Brand: ModelValidationPolicy(
        writable_fields={"name", "description", "website", "is_active"},
        required_on_create={"name"},
    ),
    DeviceModel: ModelValidationPolicy(
        writable_fields={"name", "brand_id", "device_type_id", "specifications", "release_year", "is_active"},
        required_on_create={"name", "brand_id"},
    ),
    ServiceType: ModelValidationPolicy(
        writable_fields={
            "name", "description", "category", "base_price_cents",
            "estimated_duration_minutes", "is_public", "is_active",
        },
        required_on_create={"name"},
    ),
    PredefinedProblem: ModelValidationPolicy(
        writable_fields={
            "name", "description", "category", "severity", "estimated_cost_cents",
            "estimated_duration_minutes", "sort_order", "is_active",
        },
        required_on_create={"name"},
    ),
}

SEGMENTS = "<any('device-types', 'brands', 'models', 'service-types', 'predefined-problems'):segment>"

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


def _validated(model, payload: dict, partial: bool) -> dict:
    patch = validate_payload(model=model, payload=payload, policy=CATALOG_POLICIES[model], partial=partial)
    enforce_amounts(patch, "base_price_cents", "estimated_cost_cents")
    enforce_non_negative(patch, "estimated_duration_minutes")
    return patch


@catalog_bp.get(f"/{SEGMENTS}")
@require_auth
@require_permission("VIEW_DEVICES")
def list_entries_route(segment: str):
    model = catalog_service.CATALOG_MODELS[segment]
    entries = catalog_service.list_entries(
        model,
        include_inactive=request.args.get("include_inactive") in {"1", "true"},
        brand_id=request.args.get("brand_id", type=int),
        device_type_id=request.args.get("device_type_id", type=int),
    )
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)})


@catalog_bp.post(f"/{SEGMENTS}")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_entry_route(segment: str):
    model = catalog_service.CATALOG_MODELS[segment]
    payload = request.get_json(silent=True) or {}
    try:
        entry = catalog_service.create_entry(model, _validated(model, payload, partial=False))
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create %s", segment)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"item": entry.to_dict()}), 201


@catalog_bp.get(f"/{SEGMENTS}/<int:entry_id>")
@require_auth
@require_permission("VIEW_DEVICES")
def get_entry_route(segment: str, entry_id: int):
    try:
        entry = catalog_service.get_entry(catalog_service.CATALOG_MODELS[segment], entry_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"item": entry.to_dict()})


@catalog_bp.put(f"/{SEGMENTS}/<int:entry_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_entry_route(segment: str, entry_id: int):
    model = catalog_service.CATALOG_MODELS[segment]
    payload = request.get_json(silent=True) or {}
    try:
        entry = catalog_service.update_entry(model, entry_id, _validated(model, payload, partial=True))
    except ValueError as e:
        return error_response(e)
    return jsonify({"item": entry.to_dict()})


@catalog_bp.delete(f"/{SEGMENTS}/<int:entry_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_entry_route(segment: str, entry_id: int):
    try:
        entry = catalog_service.deactivate_entry(catalog_service.CATALOG_MODELS[segment], entry_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"item": entry.to_dict(), "message": "Deactivated"})
