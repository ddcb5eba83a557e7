# Overview: Flask API routes for appointments; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, list_scope, record_scope
from ..models import Appointment
from ..services import appointment_service
from ..validation import ModelValidationPolicy, validate_payload, error_response
from solnet.time_utils import parse_date


APPOINTMENT_POLICY = ModelValidationPolicy(
    writable_fields=set(appointment_service.APPOINTMENT_MUTABLE_FIELDS),
    required_on_create={"customer_id", "title", "appointment_date"},
)

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


def _validated(payload: dict, partial: bool) -> dict:
    patch = validate_payload(model=Appointment, payload=payload, policy=APPOINTMENT_POLICY, partial=partial)
    if not g.is_admin:
        patch.pop("location_id", None)
    return patch


@appointments_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_appointments_route():
    """Query params: date (YYYY-MM-DD), status, customer_id."""
    try:
        appointments = appointment_service.list_appointments(
            **list_scope(),
            on_date=parse_date(request.args.get("date")),
            status=request.args.get("status") or None,
            customer_id=request.args.get("customer_id", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify({"items": [a.to_dict() for a in appointments], "count": len(appointments)})


@appointments_bp.post("")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def create_appointment_route():
    payload = request.get_json(silent=True) or {}
    try:
        appointment = appointment_service.create_appointment(
            _validated(payload, partial=False), default_location_id=g.location_id
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create appointment")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"appointment": appointment.to_dict()}), 201


@appointments_bp.get("/<int:appointment_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_appointment_route(appointment_id: int):
    try:
        appointment = appointment_service.get_appointment(appointment_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"appointment": appointment.to_dict()})


@appointments_bp.put("/<int:appointment_id>")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def update_appointment_route(appointment_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        appointment = appointment_service.get_appointment(appointment_id, **record_scope())
        appointment = appointment_service.update_appointment(appointment, _validated(payload, partial=True))
    except ValueError as e:
        return error_response(e)
    return jsonify({"appointment": appointment.to_dict()})


@appointments_bp.put("/<int:appointment_id>/status")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def update_appointment_status_route(appointment_id: int):
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        return jsonify({"error": "status is required"}), 400
    try:
        appointment = appointment_service.get_appointment(appointment_id, **record_scope())
        appointment = appointment_service.update_status(appointment, status)
    except ValueError as e:
        return error_response(e)
    return jsonify({"appointment": appointment.to_dict()})


@appointments_bp.delete("/<int:appointment_id>")
@require_auth
@require_permission("MANAGE_APPOINTMENTS")
def delete_appointment_route(appointment_id: int):
    try:
        appointment = appointment_service.get_appointment(appointment_id, **record_scope())
        appointment_service.delete_appointment(appointment)
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Appointment deleted"})
