# Overview: Flask API routes for counter sales; parses input and returns JSON responses.

"""Sales API routes with permission enforcement"""

from datetime import timedelta

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, list_scope, record_scope
from ..services import sales_service
from ..validation import error_response
from solnet.time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _date_range():
    """date_from / date_to query params; a bare date_to covers the whole day."""
    raw_to = request.args.get("date_to")
    date_from = parse_iso_datetime(request.args.get("date_from"))
    date_to = parse_iso_datetime(raw_to)
    if date_to is not None and len(raw_to.strip()) == 10:
        date_to = date_to + timedelta(days=1) - timedelta(microseconds=1)
    return date_from, date_to


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Body:
    {
      "customer_id": 12,                      (optional)
      "items": [{"inventory_item_id": 3, "quantity": 2, "unit_price_cents": 1500}],
      "tax_cents": 0, "discount_cents": 0,
      "payment_method": "cash"
    }

    409 with details when any line exceeds on-hand stock; nothing is written.
    """
    data = request.get_json(silent=True) or {}
    try:
        location_id = g.location_id
        if g.is_admin and data.get("location_id") is not None:
            location_id = int(data["location_id"])
        sale = sales_service.create_sale(data, user=g.current_user, location_id=location_id, is_admin=g.is_admin)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale.to_dict(include_items=True)}), 201


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    try:
        date_from, date_to = _date_range()
        result = sales_service.list_sales(
            **list_scope(),
            date_from=date_from,
            date_to=date_to,
            customer_id=request.args.get("customer_id", type=int),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify(result)


@sales_bp.get("/today")
@require_auth
@require_permission("VIEW_SALES")
def todays_sales_route():
    try:
        result = sales_service.todays_sales(**list_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify(result)


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"sale": sale.to_dict(include_items=True)})
