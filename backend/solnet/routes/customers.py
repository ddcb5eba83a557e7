# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

"""
Customer routes.

Customers are location-scoped: workers see their own location's customers,
admins see all (optionally ?location_id=).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, list_scope, record_scope
from ..models import Customer
from ..services import customer_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, error_response


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "notes", "location_id", "is_active"},
    required_on_create={"name", "phone"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_customers_route():
    """
    Query params:
    - search: substring of name, phone or email
    - include_inactive: 1 to include deactivated customers
    - page / per_page: optional pagination (per_page max 100)
    """
    try:
        result = customer_service.list_customers(
            **list_scope(),
            search=request.args.get("search"),
            include_inactive=request.args.get("include_inactive") in {"1", "true"},
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify(result)


@customers_bp.get("/search")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def quick_search_route():
    try:
        customers = customer_service.quick_search(request.args.get("q", ""), **list_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)})


@customers_bp.get("/by-phone/<phone>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def by_phone_route(phone: str):
    customer = customer_service.find_by_phone(phone)
    if not customer or (not g.is_admin and customer.location_id != g.location_id):
        return jsonify({"error": "Customer not found"}), 404
    return jsonify({"customer": customer.to_dict()})


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    if not g.is_admin:
        # Workers always create customers in their own location
        patch["location_id"] = g.location_id

    try:
        customer = customer_service.create_customer(patch, default_location_id=g.location_id)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"customer": customer.to_dict()})


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.get_customer(customer_id, **record_scope())
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        if not g.is_admin:
            patch.pop("location_id", None)
        customer = customer_service.update_customer(customer, patch)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"customer": customer.to_dict()})


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def delete_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id, **record_scope())
        customer_service.deactivate_customer(customer)
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Customer deactivated", "customer": customer.to_dict()})


@customers_bp.get("/<int:customer_id>/devices")
@require_auth
@require_permission("VIEW_DEVICES")
def customer_devices_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    devices = customer_service.customer_devices(customer)
    return jsonify({"items": [d.to_dict() for d in devices], "count": len(devices)})


@customers_bp.get("/<int:customer_id>/sales")
@require_auth
@require_permission("VIEW_SALES")
def customer_sales_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    sales = customer_service.customer_sales(customer)
    return jsonify({"items": [s.to_dict(include_items=True) for s in sales], "count": len(sales)})
