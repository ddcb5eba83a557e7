# Overview: Flask API route for the global search box.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_any_permission, list_scope
from ..services import permission_service, search_service
from ..validation import error_response


search_bp = Blueprint("search", __name__, url_prefix="/api/search")


@search_bp.get("")
@require_auth
@require_any_permission("VIEW_DEVICES", "VIEW_CUSTOMERS", "VIEW_SALES")
def search_route():
    """Query params: q. Returns {"devices", "customers", "sales"}, at most 10 each."""
    try:
        results = search_service.search(
            request.args.get("q", ""),
            **list_scope(),
            permissions=permission_service.get_user_permissions(g.current_user),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify(results)
