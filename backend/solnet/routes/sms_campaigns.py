# Overview: Flask API routes for bulk SMS campaigns and saved recipient groups.

"""
SMS campaign routes

- /api/sms-campaigns      send now, schedule, edit/cancel pending, preview
- /api/recipient-groups   saved customer lists used as a target group
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..models import RecipientGroup
from ..services import recipient_group_service, sms_campaign_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload, error_response


RECIPIENT_GROUP_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "is_active"},
    required_on_create={"name"},
)

sms_campaigns_bp = Blueprint("sms_campaigns", __name__, url_prefix="/api/sms-campaigns")
recipient_groups_bp = Blueprint("recipient_groups", __name__, url_prefix="/api/recipient-groups")


def _preview_args() -> dict:
    """Query params for /preview; selected_customer_ids is comma-separated."""
    args = request.args
    kwargs = {"recipient_group_id": args.get("recipient_group_id", type=int)}

    raw_ids = args.get("selected_customer_ids")
    if raw_ids:
        try:
            kwargs["selected_customer_ids"] = [int(x) for x in raw_ids.split(",") if x.strip()]
        except ValueError:
            raise ValidationError("selected_customer_ids must be comma-separated integers")

    filters = {}
    for key in ("min_total_spent_cents", "last_visit_days"):
        value = args.get(key, type=int)
        if value is not None:
            filters[key] = value
    if filters:
        kwargs["custom_filters"] = filters
    return kwargs


# =============================================================================
# CAMPAIGNS
# =============================================================================

@sms_campaigns_bp.get("")
@require_auth
@require_permission("SEND_SMS")
def list_campaigns_route():
    campaigns = sms_campaign_service.list_campaigns()
    return jsonify({"items": [c.to_dict() for c in campaigns], "count": len(campaigns)})


@sms_campaigns_bp.get("/preview")
@require_auth
@require_permission("SEND_SMS")
def preview_route():
    """?target_group=...&recipient_group_id=&selected_customer_ids=1,2&min_total_spent_cents=&last_visit_days="""
    target_group = request.args.get("target_group") or "all_customers"
    try:
        result = sms_campaign_service.preview(target_group, **_preview_args())
    except ValueError as e:
        return error_response(e)
    return jsonify(result)


@sms_campaigns_bp.post("/send")
@require_auth
@require_permission("SEND_SMS")
def send_campaign_route():
    """
    Body: {name, message | template_id, target_group, custom_filters?,
           selected_customer_ids?, recipient_group_id?, occasion?}

    Sends immediately; the response carries per-recipient outcomes.
    """
    payload = request.get_json(silent=True) or {}
    try:
        campaign = sms_campaign_service.create_and_send(payload, user_id=g.current_user.id)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to send SMS campaign")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"campaign": campaign.to_dict(include_recipients=True)}), 201


@sms_campaigns_bp.post("/schedule")
@require_auth
@require_permission("SEND_SMS")
def schedule_campaign_route():
    payload = request.get_json(silent=True) or {}
    try:
        campaign = sms_campaign_service.schedule_campaign(payload, user_id=g.current_user.id)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to schedule SMS campaign")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"campaign": campaign.to_dict()}), 201


@sms_campaigns_bp.get("/<int:campaign_id>")
@require_auth
@require_permission("SEND_SMS")
def get_campaign_route(campaign_id: int):
    try:
        campaign = sms_campaign_service.get_campaign(campaign_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"campaign": campaign.to_dict(include_recipients=True)})


@sms_campaigns_bp.put("/<int:campaign_id>")
@require_auth
@require_permission("SEND_SMS")
def update_campaign_route(campaign_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        campaign = sms_campaign_service.get_campaign(campaign_id)
        campaign = sms_campaign_service.update_campaign(campaign, payload)
    except ValueError as e:
        return error_response(e)
    return jsonify({"campaign": campaign.to_dict()})


@sms_campaigns_bp.post("/<int:campaign_id>/send")
@require_auth
@require_permission("SEND_SMS")
def send_scheduled_route(campaign_id: int):
    try:
        campaign = sms_campaign_service.send_now(campaign_id)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to send SMS campaign")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"campaign": campaign.to_dict(include_recipients=True)})


@sms_campaigns_bp.post("/<int:campaign_id>/cancel")
@require_auth
@require_permission("SEND_SMS")
def cancel_campaign_route(campaign_id: int):
    try:
        campaign = sms_campaign_service.cancel_campaign(sms_campaign_service.get_campaign(campaign_id))
    except ValueError as e:
        return error_response(e)
    return jsonify({"campaign": campaign.to_dict(), "message": "Campaign cancelled"})


@sms_campaigns_bp.delete("/<int:campaign_id>")
@require_auth
@require_permission("SEND_SMS")
def delete_campaign_route(campaign_id: int):
    try:
        sms_campaign_service.delete_campaign(sms_campaign_service.get_campaign(campaign_id))
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Campaign deleted"})


# =============================================================================
# RECIPIENT GROUPS
# =============================================================================

@recipient_groups_bp.get("")
@require_auth
@require_permission("SEND_SMS")
def list_groups_route():
    groups = recipient_group_service.list_groups(
        include_inactive=request.args.get("include_inactive") in {"1", "true"}
    )
    return jsonify({"items": [grp.to_dict() for grp in groups], "count": len(groups)})


@recipient_groups_bp.get("/member-counts")
@require_auth
@require_permission("SEND_SMS")
def member_counts_route():
    counts = recipient_group_service.member_counts()
    return jsonify({"counts": {str(k): v for k, v in counts.items()}})


@recipient_groups_bp.post("")
@require_auth
@require_permission("SEND_SMS")
def create_group_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=RecipientGroup, payload=payload, policy=RECIPIENT_GROUP_POLICY, partial=False)
        group = recipient_group_service.create_group(patch, user_id=g.current_user.id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"group": group.to_dict()}), 201


@recipient_groups_bp.get("/<int:group_id>")
@require_auth
@require_permission("SEND_SMS")
def get_group_route(group_id: int):
    try:
        group = recipient_group_service.get_group(group_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"group": group.to_dict()})


@recipient_groups_bp.put("/<int:group_id>")
@require_auth
@require_permission("SEND_SMS")
def update_group_route(group_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        group = recipient_group_service.get_group(group_id)
        patch = validate_payload(model=RecipientGroup, payload=payload, policy=RECIPIENT_GROUP_POLICY, partial=True)
        group = recipient_group_service.update_group(group, patch)
    except ValueError as e:
        return error_response(e)
    return jsonify({"group": group.to_dict()})


@recipient_groups_bp.delete("/<int:group_id>")
@require_auth
@require_permission("SEND_SMS")
def delete_group_route(group_id: int):
    try:
        recipient_group_service.delete_group(recipient_group_service.get_group(group_id))
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Recipient group deleted"})


@recipient_groups_bp.get("/<int:group_id>/customers")
@require_auth
@require_permission("SEND_SMS")
def group_customers_route(group_id: int):
    try:
        group = recipient_group_service.get_group(group_id)
    except ValueError as e:
        return error_response(e)
    customers = recipient_group_service.group_customers(group)
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)})


@recipient_groups_bp.post("/<int:group_id>/customers")
@require_auth
@require_permission("SEND_SMS")
def add_group_customer_route(group_id: int):
    data = request.get_json(silent=True) or {}
    customer_id = data.get("customer_id")
    if isinstance(customer_id, bool) or not isinstance(customer_id, int):
        return jsonify({"error": "customer_id must be an integer"}), 400
    try:
        group = recipient_group_service.get_group(group_id)
        recipient_group_service.add_customer(group, customer_id, user_id=g.current_user.id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"group": group.to_dict(), "message": "Customer added"}), 201


@recipient_groups_bp.delete("/<int:group_id>/customers/<int:customer_id>")
@require_auth
@require_permission("SEND_SMS")
def remove_group_customer_route(group_id: int, customer_id: int):
    try:
        group = recipient_group_service.get_group(group_id)
        recipient_group_service.remove_customer(group, customer_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"message": "Customer removed"})
