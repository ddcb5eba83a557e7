# Overview: Flask API routes for suppliers and purchase orders.

"""
Purchasing routes.

SECURITY: All routes require authentication.
- Viewing suppliers and orders requires VIEW_INVENTORY
- Supplier edits and the order workflow require MANAGE_PURCHASE_ORDERS
- Approving a submitted order requires APPROVE_PURCHASE_ORDERS

Purchase orders are location-scoped like inventory items.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, list_scope, record_scope
from ..models import PurchaseOrder, Supplier
from ..services import purchasing_service
from ..validation import ModelValidationPolicy, validate_payload, error_response


SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields=set(purchasing_service.SUPPLIER_MUTABLE_FIELDS),
    required_on_create={"name"},
)

ORDER_POLICY = ModelValidationPolicy(
    writable_fields=set(purchasing_service.ORDER_MUTABLE_FIELDS),
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


# =============================================================================
# SUPPLIERS
# =============================================================================

@suppliers_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_suppliers_route():
    """Query params: search, include_inactive=1."""
    suppliers = purchasing_service.list_suppliers(
        search=request.args.get("search"),
        include_inactive=request.args.get("include_inactive") in {"1", "true"},
    )
    return jsonify({"items": [s.to_dict() for s in suppliers], "count": len(suppliers)})


@suppliers_bp.post("")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        supplier = purchasing_service.create_supplier(patch)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"supplier": supplier.to_dict()}), 201


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_supplier_route(supplier_id: int):
    try:
        supplier = purchasing_service.get_supplier(supplier_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"supplier": supplier.to_dict()})


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        supplier = purchasing_service.get_supplier(supplier_id)
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        supplier = purchasing_service.update_supplier(supplier, patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"supplier": supplier.to_dict()})


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def delete_supplier_route(supplier_id: int):
    try:
        supplier = purchasing_service.get_supplier(supplier_id)
        purchasing_service.deactivate_supplier(supplier)
    except ValueError as e:
        return error_response(e)
    return jsonify({"supplier": supplier.to_dict(), "message": "Supplier deactivated"})


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

def _split_payload(payload: dict) -> tuple[dict, list | None]:
    payload = dict(payload)
    items = payload.pop("items", None)
    return payload, items


@purchase_orders_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_orders_route():
    """Query params: status, supplier_id, page, per_page."""
    try:
        result = purchasing_service.list_orders(
            **list_scope(),
            status=request.args.get("status") or None,
            supplier_id=request.args.get("supplier_id", type=int),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify(result)


@purchase_orders_bp.post("")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def create_order_route():
    """
    Body: header fields plus "items": [{"inventory_item_id" | "name", "sku",
    "quantity", "unit_price_cents"}]. The order starts as a draft.
    """
    header, items = _split_payload(request.get_json(silent=True) or {})
    try:
        patch = validate_payload(model=PurchaseOrder, payload=header, policy=ORDER_POLICY, partial=False)
        if not g.is_admin:
            patch.pop("location_id", None)
        order = purchasing_service.create_order(
            patch, items, user_id=g.current_user.id, default_location_id=g.location_id
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"purchase_order": order.to_dict()}), 201


@purchase_orders_bp.post("/from-predictions")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def create_from_predictions_route():
    """Draft an order for the scoped location's items that need reordering. Body: {"supplier_id"}."""
    data = request.get_json(silent=True) or {}
    try:
        scope = list_scope()
        location_id = scope["location_id"] if scope["location_id"] is not None else g.location_id
        order = purchasing_service.draft_from_predictions(
            location_id=location_id,
            user_id=g.current_user.id,
            supplier_id=data.get("supplier_id"),
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to draft purchase order from predictions")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"purchase_order": order.to_dict()}), 201


@purchase_orders_bp.get("/<int:order_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_order_route(order_id: int):
    try:
        order = purchasing_service.get_order(order_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"purchase_order": order.to_dict()})


@purchase_orders_bp.get("/<int:order_id>/items")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_order_items_route(order_id: int):
    try:
        order = purchasing_service.get_order(order_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"items": [i.to_dict() for i in order.items], "count": len(order.items)})


@purchase_orders_bp.put("/<int:order_id>")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def update_order_route(order_id: int):
    header, items = _split_payload(request.get_json(silent=True) or {})
    try:
        order = purchasing_service.get_order(order_id, **record_scope())
        patch = validate_payload(model=PurchaseOrder, payload=header, policy=ORDER_POLICY, partial=True)
        if not g.is_admin:
            patch.pop("location_id", None)
        order = purchasing_service.update_order(order, patch, items)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase order")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"purchase_order": order.to_dict()})


@purchase_orders_bp.delete("/<int:order_id>")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def delete_order_route(order_id: int):
    try:
        order = purchasing_service.get_order(order_id, **record_scope())
        purchasing_service.delete_order(order)
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Purchase order deleted"})


@purchase_orders_bp.post("/<int:order_id>/submit")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def submit_order_route(order_id: int):
    try:
        order = purchasing_service.get_order(order_id, **record_scope())
        order = purchasing_service.submit_order(order)
    except ValueError as e:
        return error_response(e)
    return jsonify({"purchase_order": order.to_dict()})


@purchase_orders_bp.post("/<int:order_id>/approve")
@require_auth
@require_permission("APPROVE_PURCHASE_ORDERS")
def approve_order_route(order_id: int):
    try:
        order = purchasing_service.get_order(order_id, **record_scope())
        order = purchasing_service.approve_order(order, user_id=g.current_user.id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"purchase_order": order.to_dict()})


@purchase_orders_bp.post("/<int:order_id>/receive")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def receive_order_route(order_id: int):
    """Body (optional): {"items": [{"id": line_id, "received_quantity": n}]}."""
    data = request.get_json(silent=True) or {}
    try:
        purchasing_service.get_order(order_id, **record_scope())
        order = purchasing_service.receive_order(order_id, data.get("items"))
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to receive purchase order")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"purchase_order": order.to_dict()})


@purchase_orders_bp.post("/<int:order_id>/cancel")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def cancel_order_route(order_id: int):
    """Body: {"reason": "..."}"""
    data = request.get_json(silent=True) or {}
    try:
        order = purchasing_service.get_order(order_id, **record_scope())
        order = purchasing_service.cancel_order(order, data.get("reason"))
    except ValueError as e:
        return error_response(e)
    return jsonify({"purchase_order": order.to_dict()})


@purchase_orders_bp.post("/<int:order_id>/reopen")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def reopen_order_route(order_id: int):
    try:
        order = purchasing_service.get_order(order_id, **record_scope())
        order = purchasing_service.reopen_order(order)
    except ValueError as e:
        return error_response(e)
    return jsonify({"purchase_order": order.to_dict()})
