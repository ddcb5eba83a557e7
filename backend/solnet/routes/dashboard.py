# Overview: Flask API routes for the dashboard tiles and the analytics summary.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_permission, list_scope
from ..services import dashboard_service
from ..validation import error_response


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")
analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@dashboard_bp.get("/stats")
@require_auth
@require_permission("VIEW_DASHBOARD")
def dashboard_stats_route():
    try:
        stats = dashboard_service.dashboard_stats(**list_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify(stats)


@analytics_bp.get("/summary")
@require_auth
@require_permission("VIEW_FINANCE")
def analytics_summary_route():
    """?months=6 (1-24)."""
    months = request.args.get("months", 6, type=int)
    if months < 1 or months > 24:
        return jsonify({"error": "months must be between 1 and 24"}), 400
    try:
        summary = dashboard_service.analytics_summary(**list_scope(), months=months)
    except ValueError as e:
        return error_response(e)
    return jsonify(summary)
