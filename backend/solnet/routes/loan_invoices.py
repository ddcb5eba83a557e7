# Overview: Flask API routes for loan invoices (repairs on credit) and their payments.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, list_scope, record_scope
from ..models import LoanInvoice
from ..services import loan_invoice_service
from ..validation import ModelValidationPolicy, validate_payload, error_response


LOAN_INVOICE_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id", "device_id", "location_id", "device_description",
        "service_description", "total_cents", "due_date", "notes",
    },
    required_on_create={"customer_id", "device_description", "total_cents", "due_date"},
)

LOAN_INVOICE_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=set(loan_invoice_service.INVOICE_MUTABLE_FIELDS),
)

loan_invoices_bp = Blueprint("loan_invoices", __name__, url_prefix="/api/loan-invoices")


@loan_invoices_bp.get("")
@require_auth
@require_permission("VIEW_FINANCE")
def list_invoices_route():
    """Query params: status (pending|partial|paid|overdue), customer_id."""
    try:
        invoices = loan_invoice_service.list_invoices(
            **list_scope(),
            status=request.args.get("status") or None,
            customer_id=request.args.get("customer_id", type=int),
        )
    except ValueError as e:
        return error_response(e)
    today = loan_invoice_service.today()
    return jsonify({"items": [i.to_dict(today=today) for i in invoices], "count": len(invoices)})


@loan_invoices_bp.post("")
@require_auth
@require_permission("MANAGE_LOAN_INVOICES")
def create_invoice_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(
            model=LoanInvoice, payload=payload, policy=LOAN_INVOICE_CREATE_POLICY, partial=False
        )
        if not g.is_admin:
            patch.pop("location_id", None)
        invoice = loan_invoice_service.create_invoice(
            patch, user_id=g.current_user.id, default_location_id=g.location_id
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create loan invoice")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"invoice": invoice.to_dict(today=loan_invoice_service.today())}), 201


@loan_invoices_bp.get("/<int:invoice_id>")
@require_auth
@require_permission("VIEW_FINANCE")
def get_invoice_route(invoice_id: int):
    try:
        invoice = loan_invoice_service.get_invoice(invoice_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    return jsonify({"invoice": invoice.to_dict(today=loan_invoice_service.today())})


@loan_invoices_bp.put("/<int:invoice_id>")
@require_auth
@require_permission("MANAGE_LOAN_INVOICES")
def update_invoice_route(invoice_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        invoice = loan_invoice_service.get_invoice(invoice_id, **record_scope())
        patch = validate_payload(
            model=LoanInvoice, payload=payload, policy=LOAN_INVOICE_UPDATE_POLICY, partial=True
        )
        invoice = loan_invoice_service.update_invoice(invoice, patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"invoice": invoice.to_dict(today=loan_invoice_service.today())})


@loan_invoices_bp.post("/<int:invoice_id>/payments")
@require_auth
@require_permission("MANAGE_LOAN_INVOICES")
def record_payment_route(invoice_id: int):
    """Body: {"amount_cents": N, "payment_method": "cash", "notes": "..."}"""
    data = request.get_json(silent=True) or {}
    try:
        loan_invoice_service.get_invoice(invoice_id, **record_scope())
        invoice, payment = loan_invoice_service.record_payment(
            invoice_id,
            amount_cents=data.get("amount_cents"),
            payment_method=data.get("payment_method") or "cash",
            notes=data.get("notes"),
            user_id=g.current_user.id,
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record loan invoice payment")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "invoice": invoice.to_dict(today=loan_invoice_service.today()),
        "payment": payment.to_dict(),
    }), 201


@loan_invoices_bp.get("/<int:invoice_id>/payments")
@require_auth
@require_permission("VIEW_FINANCE")
def list_payments_route(invoice_id: int):
    try:
        invoice = loan_invoice_service.get_invoice(invoice_id, **record_scope())
    except ValueError as e:
        return error_response(e)
    payments = loan_invoice_service.list_payments(invoice)
    return jsonify({"items": [p.to_dict() for p in payments], "count": len(payments)})
