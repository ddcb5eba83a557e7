# Overview: Flask API routes for repair tickets (devices); intake, edits, status and payment updates.

"""
Device routes

Intake assigns the receipt number (the customer's tracking code). Status
and payment changes go through their own endpoints so they are recorded
in the status history and fan out notifications.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, list_scope, record_scope
from ..models import Device
from ..models.devices import PRIORITIES
from ..services import device_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_amounts,
    enforce_choice,
    error_response,
)


DEVICE_POLICY = ModelValidationPolicy(
    writable_fields=set(device_service.DEVICE_MUTABLE_FIELDS),
    required_on_create={"customer_id", "device_type_id", "problem_description"},
)

devices_bp = Blueprint("devices", __name__, url_prefix="/api/devices")


def _validated(payload: dict, partial: bool) -> dict:
    patch = validate_payload(model=Device, payload=payload, policy=DEVICE_POLICY, partial=partial)
    enforce_amounts(patch, "estimated_cost_cents", "total_cost_cents")
    enforce_choice(patch, "priority", PRIORITIES)
    return patch


@devices_bp.get("")
@require_auth
@require_permission("VIEW_DEVICES")
def list_devices_route():
    """
    Query params:
    - status, customer_id, technician_id
    - search: receipt number, serial, brand/model, problem, customer name/phone
    - page / per_page
    """
    try:
        result = device_service.list_devices(
            **list_scope(),
            status=request.args.get("status") or None,
            search=request.args.get("search"),
            customer_id=request.args.get("customer_id", type=int),
            technician_id=request.args.get("technician_id", type=int),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify(result)


@devices_bp.get("/active-repairs")
@require_auth
@require_permission("VIEW_DEVICES")
def active_repairs_route():
    """Tickets not yet delivered or cancelled, newest first."""
    try:
        result = device_service.list_devices(
            **list_scope(),
            active_only=True,
            technician_id=request.args.get("technician_id", type=int),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify(result)


@devices_bp.post("")
@require_auth
@require_permission("REGISTER_DEVICES")
def register_device_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = _validated(payload, partial=False)
        location_id = g.location_id
        if g.is_admin and payload.get("location_id") is not None:
            location_id = int(payload["location_id"])
        device = device_service.create_device(patch, user=g.current_user, location_id=location_id, is_admin=g.is_admin)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register device")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"device": device.to_dict(), "receipt_number": device.receipt_number}), 201


@devices_bp.get("/<int:device_id>")
@require_auth
@require_permission("VIEW_DEVICES")
def get_device_route(device_id: int):
    try:
        device = device_service.get_device(device_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"device": device.to_dict()})


@devices_bp.put("/<int:device_id>")
@require_auth
@require_permission("REGISTER_DEVICES")
def update_device_route(device_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        device = device_service.get_device(device_id, **record_scope())
        device = device_service.update_device(device, _validated(payload, partial=True), **record_scope())
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update device")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"device": device.to_dict()})


@devices_bp.delete("/<int:device_id>")
@require_auth
@require_permission("DELETE_DEVICES")
def delete_device_route(device_id: int):
    try:
        device = device_service.get_device(device_id, **record_scope())
        device_service.delete_device(device)
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Device deleted"})


@devices_bp.put("/<int:device_id>/status")
@require_auth
@require_permission("UPDATE_DEVICE_STATUS")
def update_status_route(device_id: int):
    """
    Body: {"status": "...", "notes": "...", "payment_status": "..."}

    payment_status is optional; completed/delivered settle it automatically.
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        return jsonify({"error": "status is required"}), 400

    try:
        device = device_service.get_device(device_id, **record_scope())
        device = device_service.update_status(
            device,
            status,
            user=g.current_user,
            notes=data.get("notes"),
            payment_status=data.get("payment_status"),
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update device status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"device": device.to_dict(), "message": "Status updated"})


@devices_bp.put("/<int:device_id>/payment")
@require_auth
@require_permission("UPDATE_DEVICE_PAYMENT")
def update_payment_route(device_id: int):
    data = request.get_json(silent=True) or {}
    payment_status = data.get("payment_status")
    if not payment_status:
        return jsonify({"error": "payment_status is required"}), 400

    try:
        device = device_service.get_device(device_id, **record_scope())
        device = device_service.update_payment_status(
            device, payment_status, user=g.current_user, notes=data.get("notes")
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update payment status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"device": device.to_dict(), "message": "Payment status updated"})


@devices_bp.get("/<int:device_id>/history")
@require_auth
@require_permission("VIEW_DEVICES")
def status_history_route(device_id: int):
    try:
        device = device_service.get_device(device_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    history = device_service.status_history(device)
    return jsonify({"items": [h.to_dict() for h in history], "count": len(history)})


@devices_bp.post("/<int:device_id>/feedback")
@require_auth
@require_permission("UPDATE_DEVICE_STATUS")
def add_feedback_route(device_id: int):
    """Staff-entered feedback, e.g. collected at pickup."""
    data = request.get_json(silent=True) or {}
    try:
        device = device_service.get_device(device_id, **record_scope())
        feedback = device_service.add_feedback(
            device,
            rating=data.get("rating"),
            comment=data.get("comment"),
            would_recommend=data.get("would_recommend"),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify({"feedback": feedback.to_dict()}), 201
