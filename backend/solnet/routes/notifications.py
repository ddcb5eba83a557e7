# Overview: Flask API routes for the caller's in-app notifications and notification preferences.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import notification_service
from ..validation import error_response


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    """
    Query params:
    - status: unread|read|archived|all
    - limit (default 50, max 200), offset
    """
    try:
        notifications = notification_service.list_notifications(
            g.current_user.id,
            status=request.args.get("status") or None,
            limit=request.args.get("limit", type=int),
            offset=request.args.get("offset", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify({
        "items": [n.to_dict() for n in notifications],
        "count": len(notifications),
        "unread_count": notification_service.unread_count(g.current_user.id),
    })


@notifications_bp.get("/unread-count")
@require_auth
def unread_count_route():
    return jsonify({"unread_count": notification_service.unread_count(g.current_user.id)})


@notifications_bp.put("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    try:
        notification = notification_service.mark_read(g.current_user.id, notification_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"notification": notification.to_dict()})


@notifications_bp.put("/mark-all-read")
@require_auth
def mark_all_read_route():
    updated = notification_service.mark_all_read(g.current_user.id)
    return jsonify({"updated": updated})


@notifications_bp.put("/<int:notification_id>/archive")
@require_auth
def archive_route(notification_id: int):
    try:
        notification = notification_service.archive(g.current_user.id, notification_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"notification": notification.to_dict()})


@notifications_bp.get("/preferences")
@require_auth
def get_preferences_route():
    return jsonify({"preferences": notification_service.get_preferences(g.current_user.id)})


@notifications_bp.put("/preferences/<type_name>")
@require_auth
def update_preference_route(type_name: str):
    """Body: any of in_app_enabled, sms_enabled, email_enabled (booleans)."""
    data = request.get_json(silent=True) or {}
    try:
        pref = notification_service.update_preference(g.current_user.id, type_name, data)
    except ValueError as e:
        return error_response(e)
    return jsonify({"preference": pref.to_dict()})
