# Overview: Flask API routes for inventory items, stock changes, stockout predictions and alerts.

"""
Inventory routes.

SECURITY: All routes require authentication.
- View operations require VIEW_INVENTORY permission
- Create/edit/restock/adjust require MANAGE_INVENTORY permission

Items are location-scoped like customers and devices.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, list_scope, record_scope
from ..models import InventoryItem
from ..services import inventory_prediction_service, inventory_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_amounts,
    enforce_non_negative,
    error_response,
)


INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields=set(inventory_service.INVENTORY_MUTABLE_FIELDS),
    required_on_create={"name", "sku"},
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _validated(payload: dict, partial: bool) -> dict:
    patch = validate_payload(model=InventoryItem, payload=payload, policy=INVENTORY_POLICY, partial=partial)
    enforce_amounts(patch, "purchase_price_cents", "sale_price_cents")
    enforce_non_negative(patch, "quantity", "min_stock_level", "reorder_point", "reorder_quantity", "lead_time_days")
    if not g.is_admin:
        patch.pop("location_id", None)
    return patch


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_items_route():
    """
    Query params:
    - search: name, sku, brand or barcode
    - category
    - low_stock: 1 for items at or below min_stock_level
    """
    try:
        result = inventory_service.list_items(
            **list_scope(),
            search=request.args.get("search"),
            category=request.args.get("category") or None,
            low_stock=request.args.get("low_stock") in {"1", "true"},
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify(result)


@inventory_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_route():
    try:
        items = inventory_service.low_stock_items(**list_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)})


@inventory_bp.post("")
@require_auth
@require_permission("MANAGE_INVENTORY")
def create_item_route():
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.create_item(_validated(payload, partial=False), default_location_id=g.location_id)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"item": item.to_dict()}), 201


@inventory_bp.get("/<int:item_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_item_route(item_id: int):
    try:
        item = inventory_service.get_item(item_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"item": item.to_dict()})


@inventory_bp.put("/<int:item_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def update_item_route(item_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.get_item(item_id, **record_scope())
        item = inventory_service.update_item(item, _validated(payload, partial=True))
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update inventory item")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"item": item.to_dict()})


@inventory_bp.delete("/<int:item_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def delete_item_route(item_id: int):
    try:
        item = inventory_service.get_item(item_id, **record_scope())
        inventory_service.deactivate_item(item)
    except ValueError as e:
        return error_response(e)
    return jsonify({"item": item.to_dict(), "message": "Item deactivated"})


@inventory_bp.post("/<int:item_id>/restock")
@require_auth
@require_permission("MANAGE_INVENTORY")
def restock_route(item_id: int):
    """Body: {"quantity": N} with N > 0; adds to on-hand stock."""
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.get_item(item_id, **record_scope())
        item = inventory_service.restock(item, data.get("quantity"))
    except ValueError as e:
        return error_response(e)
    return jsonify({"item": item.to_dict()})


@inventory_bp.post("/<int:item_id>/adjust")
@require_auth
@require_permission("MANAGE_INVENTORY")
def adjust_route(item_id: int):
    """Body: {"quantity": N} with N >= 0; on-hand becomes exactly N."""
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.get_item(item_id, **record_scope())
        item = inventory_service.set_quantity(item, data.get("quantity"))
    except ValueError as e:
        return error_response(e)
    return jsonify({"item": item.to_dict()})


# =============================================================================
# PREDICTIONS
# =============================================================================

@inventory_bp.get("/predictions")
@require_auth
@require_permission("VIEW_INVENTORY")
def predictions_route():
    try:
        items = inventory_service.scoped_items_query(**list_scope()).all()
    except ValueError as e:
        return error_response(e)
    predictions = inventory_prediction_service.predictions_for(items)
    return jsonify({"items": [p.to_dict() for p in predictions], "count": len(predictions)})


@inventory_bp.post("/predictions/refresh")
@require_auth
@require_permission("MANAGE_INVENTORY")
def refresh_predictions_route():
    try:
        items = inventory_service.scoped_items_query(**list_scope()).all()
        refreshed = inventory_prediction_service.refresh_snapshots(items)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to refresh inventory predictions")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"refreshed": refreshed})


@inventory_bp.get("/alerts")
@require_auth
@require_permission("VIEW_INVENTORY")
def alerts_route():
    try:
        items = inventory_service.scoped_items_query(**list_scope()).all()
    except ValueError as e:
        return error_response(e)
    alerts = inventory_prediction_service.alerts_for(inventory_prediction_service.predictions_for(items))
    return jsonify({"alerts": alerts, "count": len(alerts)})


# =============================================================================
# ACCESSORIES
# =============================================================================

accessories_bp = Blueprint("accessories", __name__, url_prefix="/api/accessories")


@accessories_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_accessories_route():
    """Inventory items in the accessories category. Query params: search, page, per_page."""
    try:
        result = inventory_service.list_items(
            **list_scope(),
            search=request.args.get("search"),
            category=inventory_service.ACCESSORY_CATEGORY,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify(result)


@accessories_bp.post("")
@require_auth
@require_permission("MANAGE_INVENTORY")
def create_accessory_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = _validated(payload, partial=False)
        patch["category"] = inventory_service.ACCESSORY_CATEGORY
        item = inventory_service.create_item(patch, default_location_id=g.location_id)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create accessory")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"item": item.to_dict()}), 201
