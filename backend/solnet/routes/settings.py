# Overview: Flask API routes for app settings and the business profile.

"""
Settings routes

- /api/settings                     (category, key) -> JSON value rows
- /api/settings/advanced/<key>      shorthand for the "advanced" category
- /api/business-profile             the single business profile row
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_permission
from ..services import settings_service
from ..validation import error_response


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")
business_profile_bp = Blueprint("business_profile", __name__, url_prefix="/api/business-profile")

# Secrets are write-only through the generic settings API
SECRET_KEYS = {("sms", "auth_token")}


def _public_value(category: str, key: str, value):
    if (category, key) in SECRET_KEYS and value:
        return f"****{str(value)[-4:]}"
    return value


def _row_dict(row) -> dict:
    data = row.to_dict()
    data["value"] = _public_value(row.category, row.key, row.value)
    return data


@settings_bp.get("")
@require_auth
@require_permission("MANAGE_SETTINGS")
def list_settings_route():
    rows = settings_service.list_settings(request.args.get("category") or None)
    return jsonify({"items": [_row_dict(r) for r in rows], "count": len(rows)})


@settings_bp.post("")
@require_auth
@require_permission("MANAGE_SETTINGS")
def upsert_setting_route():
    """Body: {"category": "...", "key": "...", "value": <json>, "description": "..."}"""
    data = request.get_json(silent=True) or {}
    try:
        row = settings_service.upsert_setting(
            data.get("category") or "",
            data.get("key") or "",
            data.get("value"),
            description=data.get("description"),
            user_id=g.current_user.id,
        )
    except ValueError as e:
        return error_response(e)
    return jsonify({"setting": _row_dict(row)})


@settings_bp.get("/advanced/<key>")
@require_auth
@require_permission("MANAGE_SETTINGS")
def get_advanced_setting_route(key: str):
    row = settings_service.get_setting_row(settings_service.ADVANCED_CATEGORY, key)
    if row is None:
        return jsonify({"error": "Setting not found"}), 404
    return jsonify({"setting": _row_dict(row)})


@settings_bp.put("/advanced/<key>")
@require_auth
@require_permission("MANAGE_SETTINGS")
def put_advanced_setting_route(key: str):
    data = request.get_json(silent=True) or {}
    if "value" not in data:
        return jsonify({"error": "value is required"}), 400
    try:
        row = settings_service.upsert_setting(
            settings_service.ADVANCED_CATEGORY,
            key,
            data["value"],
            description=data.get("description"),
            user_id=g.current_user.id,
        )
    except ValueError as e:
        return error_response(e)
    return jsonify({"setting": _row_dict(row)})


@settings_bp.get("/<category>")
@require_auth
@require_permission("MANAGE_SETTINGS")
def get_category_route(category: str):
    values = settings_service.get_category(category)
    return jsonify({
        "category": category,
        "settings": {k: _public_value(category, k, v) for k, v in values.items()},
    })


@settings_bp.put("/<category>/<key>")
@require_auth
@require_permission("MANAGE_SETTINGS")
def put_setting_route(category: str, key: str):
    data = request.get_json(silent=True) or {}
    if "value" not in data:
        return jsonify({"error": "value is required"}), 400
    try:
        row = settings_service.upsert_setting(
            category,
            key,
            data["value"],
            description=data.get("description"),
            user_id=g.current_user.id,
        )
    except ValueError as e:
        return error_response(e)
    return jsonify({"setting": _row_dict(row)})


@settings_bp.delete("/<category>/<key>")
@require_auth
@require_permission("MANAGE_SETTINGS")
def delete_setting_route(category: str, key: str):
    try:
        settings_service.delete_setting(category, key)
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Setting deleted"})


# =============================================================================
# BUSINESS PROFILE
# =============================================================================

@business_profile_bp.get("")
@require_auth
def get_business_profile_route():
    profile = settings_service.get_business_profile()
    return jsonify({"profile": profile.to_dict() if profile else None})


@business_profile_bp.put("")
@require_auth
@require_permission("MANAGE_SETTINGS")
def put_business_profile_route():
    try:
        profile = settings_service.upsert_business_profile(request.get_json(silent=True) or {})
    except ValueError as e:
        return error_response(e)
    return jsonify({"profile": profile.to_dict()})
