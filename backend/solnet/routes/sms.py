# Overview: Flask API routes for SMS settings, test sends, templates and the outbound queue.

"""
SMS routes

- /api/sms/settings   Twilio credentials and notification switches
- /api/sms/test       send one message through the gateway
- /api/sms/templates  reusable campaign bodies
- /api/sms-queue      admin view of the outbound queue
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..models import SmsTemplate
from ..services import settings_service, sms_campaign_service, sms_gateway, sms_queue_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload, error_response


SMS_SETTING_KEYS = {
    "enabled": bool,
    "account_sid": str,
    "auth_token": str,
    "from_number": str,
    "notify_device_registration": bool,
    "notify_status_updates": bool,
}

SMS_TEMPLATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "message", "category", "variables", "is_active"},
    required_on_create={"name", "message"},
)

sms_bp = Blueprint("sms", __name__, url_prefix="/api/sms")
sms_queue_bp = Blueprint("sms_queue", __name__, url_prefix="/api/sms-queue")


def _clean_settings(data: dict) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    values = {}
    for key, value in data.items():
        expected = SMS_SETTING_KEYS.get(key)
        if expected is None:
            raise ValidationError(f"Field not allowed: {key}")
        if value is None:
            values[key] = None
            continue
        if not isinstance(value, expected):
            raise ValidationError(f"{key} must be a {'boolean' if expected is bool else 'string'}")
        if expected is str:
            value = value.strip()
        # The masked token echoed back by the settings form is not a new value
        if key == "auth_token" and value.startswith("****"):
            continue
        values[key] = value
    return values


# =============================================================================
# SETTINGS
# =============================================================================

@sms_bp.get("/settings")
@require_auth
@require_permission("MANAGE_SMS_SETTINGS")
def get_sms_settings_route():
    return jsonify({"settings": sms_gateway.masked_settings()})


@sms_bp.put("/settings")
@require_auth
@require_permission("MANAGE_SMS_SETTINGS")
def update_sms_settings_route():
    try:
        values = _clean_settings(request.get_json(silent=True) or {})
        settings_service.upsert_many(sms_gateway.SMS_CATEGORY, values, user_id=g.current_user.id)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update SMS settings")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"settings": sms_gateway.masked_settings(), "message": "SMS settings updated"})


@sms_bp.post("/test")
@require_auth
@require_permission("MANAGE_SMS_SETTINGS")
def send_test_sms_route():
    data = request.get_json(silent=True) or {}
    phone = (data.get("phone") or "").strip()
    if not phone:
        return jsonify({"error": "phone is required"}), 400
    message = data.get("message") or "Test message from your repair shop."

    result = sms_gateway.send_sms(phone, message)
    if not result.success:
        return jsonify({"success": False, "error": result.error}), 502
    return jsonify({
        "success": True,
        "sid": result.sid,
        "to": sms_gateway.format_phone_number(phone),
        "gateway_enabled": sms_gateway.load_config().is_active,
    })


# =============================================================================
# TEMPLATES
# =============================================================================

@sms_bp.get("/templates")
@require_auth
@require_permission("SEND_SMS")
def list_templates_route():
    templates = sms_campaign_service.list_templates(
        include_inactive=request.args.get("include_inactive") in {"1", "true"}
    )
    return jsonify({"items": [t.to_dict() for t in templates], "count": len(templates)})


@sms_bp.post("/templates")
@require_auth
@require_permission("SEND_SMS")
def create_template_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=SmsTemplate, payload=payload, policy=SMS_TEMPLATE_POLICY, partial=False)
        template = sms_campaign_service.create_template(patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"template": template.to_dict()}), 201


@sms_bp.get("/templates/<int:template_id>")
@require_auth
@require_permission("SEND_SMS")
def get_template_route(template_id: int):
    try:
        template = sms_campaign_service.get_template(template_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"template": template.to_dict()})


@sms_bp.put("/templates/<int:template_id>")
@require_auth
@require_permission("SEND_SMS")
def update_template_route(template_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        template = sms_campaign_service.get_template(template_id)
        patch = validate_payload(model=SmsTemplate, payload=payload, policy=SMS_TEMPLATE_POLICY, partial=True)
        template = sms_campaign_service.update_template(template, patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"template": template.to_dict()})


@sms_bp.delete("/templates/<int:template_id>")
@require_auth
@require_permission("SEND_SMS")
def delete_template_route(template_id: int):
    try:
        sms_campaign_service.delete_template(sms_campaign_service.get_template(template_id))
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Template deleted"})


# =============================================================================
# QUEUE (admin)
# =============================================================================

@sms_queue_bp.get("")
@require_auth
@require_permission("MANAGE_SMS_QUEUE")
def list_queue_route():
    """Query params: status (default failed, or all), limit (max 500)."""
    try:
        rows = sms_queue_service.list_messages(
            status=request.args.get("status", "failed"),
            limit=request.args.get("limit", type=int),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})


@sms_queue_bp.get("/stats")
@require_auth
@require_permission("MANAGE_SMS_QUEUE")
def queue_stats_route():
    return jsonify({"stats": sms_queue_service.stats()})


@sms_queue_bp.post("/process")
@require_auth
@require_permission("MANAGE_SMS_QUEUE")
def process_queue_route():
    data = request.get_json(silent=True) or {}
    batch_size = data.get("batch_size") or current_app.config.get("SMS_QUEUE_BATCH_SIZE") or sms_queue_service.DEFAULT_BATCH_SIZE
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
        return jsonify({"error": "batch_size must be a positive integer"}), 400
    try:
        summary = sms_queue_service.process_pending(batch_size=batch_size)
        summary["campaigns_sent"] = sms_campaign_service.send_due_campaigns()
    except Exception:
        current_app.logger.exception("Failed to process SMS queue")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(summary)


@sms_queue_bp.post("/retry")
@require_auth
@require_permission("MANAGE_SMS_QUEUE")
def retry_queue_route():
    """Body: {"ids": [..]} to retry specific rows; empty retries every failed row."""
    data = request.get_json(silent=True) or {}
    ids = data.get("ids")
    if ids is not None and (not isinstance(ids, list) or not all(isinstance(i, int) for i in ids)):
        return jsonify({"error": "ids must be a list of integers"}), 400
    try:
        summary = sms_queue_service.retry(ids=ids or None)
    except Exception:
        current_app.logger.exception("Failed to retry SMS queue")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(summary)


@sms_queue_bp.post("/<int:queue_id>/cancel")
@require_auth
@require_permission("MANAGE_SMS_QUEUE")
def cancel_queued_route(queue_id: int):
    try:
        row = sms_queue_service.cancel(queue_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"sms": row.to_dict(), "message": "Message cancelled"})
