# Overview: Service-layer operations for SMS templates and bulk SMS campaigns.

"""
SMS Campaigns

Recipient selection by target_group (active customers with a phone only):

  all_customers          everyone
  active_customers       visited within the last 30 days
  recent_customers       visited within the last 7 days
  high_value_customers   total_spent_cents > 100000
  custom_filter          custom_filters.min_total_spent_cents and/or
                         custom_filters.last_visit_days
  selected_recipients    selected_customer_ids
  recipient_group        members of recipient_group_id

A customer's last visit is last_visit_at, else the creation time of their
most recent device.

Sending creates one SmsCampaignRecipient per customer (committed together
with the campaign), then delivers each through the gateway and records the
outcome per row. The campaign ends as sent when at least one message went
out, failed otherwise.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from ..extensions import db
from ..models import Customer, Device, RecipientGroup, RecipientGroupMember, SmsCampaign, SmsCampaignRecipient, SmsTemplate
from ..models.sms import TARGET_GROUPS
from ..validation import ConflictError, NotFoundError, ValidationError
from solnet.time_utils import parse_iso_datetime, utcnow
from . import settings_service, sms_gateway, sms_messages

logger = logging.getLogger(__name__)


HIGH_VALUE_THRESHOLD_CENTS = 100_000
ACTIVE_DAYS = 30
RECENT_DAYS = 7
PREVIEW_SAMPLE_SIZE = 5

CAMPAIGN_FIELDS = (
    "name",
    "template_id",
    "message",
    "occasion",
    "target_group",
    "custom_filters",
    "recipient_group_id",
    "selected_customer_ids",
    "scheduled_date",
)


# =============================================================================
# Templates
# =============================================================================

def list_templates(include_inactive: bool = False) -> list[SmsTemplate]:
    query = db.session.query(SmsTemplate)
    if not include_inactive:
        query = query.filter(SmsTemplate.is_active.is_(True))
    return query.order_by(SmsTemplate.name.asc()).all()


def get_template(template_id: int) -> SmsTemplate:
    template = db.session.get(SmsTemplate, template_id)
    if not template:
        raise NotFoundError("SMS template not found")
    return template


def _check_template(patch: dict, exclude_id: int | None = None) -> None:
    if "name" in patch:
        patch["name"] = patch["name"].strip()
        query = db.session.query(SmsTemplate).filter(db.func.lower(SmsTemplate.name) == patch["name"].lower())
        if exclude_id is not None:
            query = query.filter(SmsTemplate.id != exclude_id)
        if query.first():
            raise ConflictError("SMS template name already exists")
    variables = patch.get("variables")
    if variables is not None and (
        not isinstance(variables, list) or not all(isinstance(v, str) for v in variables)
    ):
        raise ValidationError("variables must be a list of strings")


def create_template(patch: dict) -> SmsTemplate:
    _check_template(patch)
    template = SmsTemplate(**patch)
    db.session.add(template)
    db.session.commit()
    return template


def update_template(template: SmsTemplate, patch: dict) -> SmsTemplate:
    _check_template(patch, exclude_id=template.id)
    for key, value in patch.items():
        setattr(template, key, value)
    db.session.commit()
    return template


def delete_template(template: SmsTemplate) -> None:
    in_use = db.session.query(SmsCampaign.id).filter(SmsCampaign.template_id == template.id).first()
    if in_use:
        template.is_active = False
    else:
        db.session.delete(template)
    db.session.commit()


# =============================================================================
# Recipient resolution
# =============================================================================

def _last_visits(customer_ids: list[int]) -> dict[int, datetime]:
    if not customer_ids:
        return {}
    rows = (
        db.session.query(Device.customer_id, db.func.max(Device.created_at))
        .filter(Device.customer_id.in_(customer_ids))
        .group_by(Device.customer_id)
        .all()
    )
    return {customer_id: latest for customer_id, latest in rows}


def _visited_within(customers: list[Customer], days: int, now: datetime) -> list[Customer]:
    cutoff = now - timedelta(days=days)
    latest_devices = _last_visits([c.id for c in customers if c.last_visit_at is None])
    selected = []
    for customer in customers:
        last_visit = customer.last_visit_at or latest_devices.get(customer.id)
        if last_visit is not None:
            last_visit = last_visit.replace(tzinfo=None)
        if last_visit is not None and last_visit >= cutoff:
            selected.append(customer)
    return selected


def _int_list(value, field: str) -> list[int]:
    if not isinstance(value, list) or not all(isinstance(v, int) and not isinstance(v, bool) for v in value):
        raise ValidationError(f"{field} must be a list of integers")
    return value


def resolve_recipients(
    target_group: str,
    *,
    custom_filters: dict | None = None,
    selected_customer_ids: list[int] | None = None,
    recipient_group_id: int | None = None,
    now: datetime | None = None,
) -> list[Customer]:
    if target_group not in TARGET_GROUPS:
        raise ValidationError(f"target_group must be one of: {', '.join(TARGET_GROUPS)}")
    now = now or utcnow()

    query = (
        db.session.query(Customer)
        .filter(Customer.is_active.is_(True), Customer.phone.isnot(None), Customer.phone != "")
        .order_by(Customer.id.asc())
    )

    if target_group == "all_customers":
        return query.all()

    if target_group == "active_customers":
        return _visited_within(query.all(), ACTIVE_DAYS, now)

    if target_group == "recent_customers":
        return _visited_within(query.all(), RECENT_DAYS, now)

    if target_group == "high_value_customers":
        return query.filter(Customer.total_spent_cents > HIGH_VALUE_THRESHOLD_CENTS).all()

    if target_group == "custom_filter":
        filters = custom_filters or {}
        if not isinstance(filters, dict):
            raise ValidationError("custom_filters must be an object")
        min_spent = filters.get("min_total_spent_cents")
        if min_spent is not None:
            query = query.filter(Customer.total_spent_cents >= int(min_spent))
        customers = query.all()
        last_visit_days = filters.get("last_visit_days")
        if last_visit_days is not None:
            customers = _visited_within(customers, int(last_visit_days), now)
        return customers

    if target_group == "selected_recipients":
        ids = _int_list(selected_customer_ids or [], "selected_customer_ids")
        if not ids:
            raise ValidationError("selected_customer_ids is required for selected_recipients")
        return query.filter(Customer.id.in_(ids)).all()

    # recipient_group
    if recipient_group_id is None:
        raise ValidationError("recipient_group_id is required for recipient_group")
    if not db.session.get(RecipientGroup, recipient_group_id):
        raise NotFoundError("Recipient group not found")
    return (
        query.join(RecipientGroupMember, RecipientGroupMember.customer_id == Customer.id)
        .filter(RecipientGroupMember.group_id == recipient_group_id)
        .all()
    )


def preview(target_group: str, **kwargs) -> dict:
    customers = resolve_recipients(target_group, **kwargs)
    return {
        "target_group": target_group,
        "recipient_count": len(customers),
        "sample": [
            {"id": c.id, "name": c.name, "phone": c.phone}
            for c in customers[:PREVIEW_SAMPLE_SIZE]
        ],
    }


# =============================================================================
# Campaigns
# =============================================================================

def list_campaigns() -> list[SmsCampaign]:
    return db.session.query(SmsCampaign).order_by(SmsCampaign.created_at.desc(), SmsCampaign.id.desc()).all()


def get_campaign(campaign_id: int) -> SmsCampaign:
    campaign = db.session.get(SmsCampaign, campaign_id)
    if not campaign:
        raise NotFoundError("SMS campaign not found")
    return campaign


def _apply_fields(campaign: SmsCampaign, payload: dict) -> None:
    unknown = set(payload) - set(CAMPAIGN_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    for key in CAMPAIGN_FIELDS:
        if key in payload:
            setattr(campaign, key, payload[key])

    if isinstance(campaign.scheduled_date, str):
        try:
            campaign.scheduled_date = parse_iso_datetime(campaign.scheduled_date)
        except ValueError:
            raise ValidationError("scheduled_date must be an ISO-8601 datetime")

    if campaign.template_id is not None:
        template = get_template(campaign.template_id)
        if not campaign.message:
            campaign.message = template.message

    if not campaign.name or not str(campaign.name).strip():
        raise ValidationError("name is required")
    if not campaign.message or not str(campaign.message).strip():
        raise ValidationError("message or template_id is required")

    campaign.target_group = campaign.target_group or "all_customers"
    if campaign.target_group not in TARGET_GROUPS:
        raise ValidationError(f"target_group must be one of: {', '.join(TARGET_GROUPS)}")
    if campaign.selected_customer_ids is not None:
        _int_list(campaign.selected_customer_ids, "selected_customer_ids")


def _build_campaign(payload: dict, user_id: int | None) -> SmsCampaign:
    campaign = SmsCampaign(status="pending", created_by_user_id=user_id)
    _apply_fields(campaign, payload)
    return campaign


def schedule_campaign(payload: dict, *, user_id: int | None = None) -> SmsCampaign:
    if not payload.get("scheduled_date"):
        raise ValidationError("scheduled_date is required")
    campaign = _build_campaign(payload, user_id)
    db.session.add(campaign)
    db.session.commit()
    return campaign


def create_and_send(payload: dict, *, user_id: int | None = None) -> SmsCampaign:
    campaign = _build_campaign(payload, user_id)
    db.session.add(campaign)
    db.session.flush()
    return _send(campaign)


def send_now(campaign_id: int) -> SmsCampaign:
    campaign = get_campaign(campaign_id)
    if campaign.status != "pending":
        raise ConflictError("Only pending campaigns can be sent")
    return _send(campaign)


def send_due_campaigns(now: datetime | None = None) -> int:
    """
    Send every pending campaign whose scheduled_date has passed.

    A campaign that cannot be sent (e.g. its recipient group is gone) is
    marked failed and the rest still go out. Returns the number sent.
    """
    now = now or utcnow()
    due = (
        db.session.query(SmsCampaign)
        .filter(
            SmsCampaign.status == "pending",
            SmsCampaign.scheduled_date.isnot(None),
            SmsCampaign.scheduled_date <= now,
        )
        .order_by(SmsCampaign.scheduled_date.asc(), SmsCampaign.id.asc())
        .all()
    )
    sent = 0
    for campaign in due:
        campaign_id = campaign.id
        try:
            _send(campaign)
        except Exception:
            db.session.rollback()
            logger.exception("Failed to send scheduled SMS campaign %s", campaign_id)
            failed = db.session.get(SmsCampaign, campaign_id)
            failed.status = "failed"
            db.session.commit()
            continue
        sent += 1
    return sent


def _send(campaign: SmsCampaign) -> SmsCampaign:
    customers = resolve_recipients(
        campaign.target_group,
        custom_filters=campaign.custom_filters,
        selected_customer_ids=campaign.selected_customer_ids,
        recipient_group_id=campaign.recipient_group_id,
    )

    business_name = settings_service.business_name()
    now = utcnow()
    recipients = []
    for customer in customers:
        recipient = SmsCampaignRecipient(
            customer_id=customer.id,
            phone_number=customer.phone,
            message=sms_messages.render_campaign_message(
                campaign.message,
                customer_name=customer.name,
                business_name=business_name,
                now=now,
            ),
            status="pending",
        )
        campaign.recipients.append(recipient)
        recipients.append(recipient)

    campaign.total_count = len(recipients)
    db.session.commit()

    sent = failed = 0
    for recipient in recipients:
        result = sms_gateway.send_sms(recipient.phone_number, recipient.message)
        if result.success:
            recipient.status = "sent"
            recipient.sent_at = utcnow()
            recipient.provider_message_id = result.sid
            sent += 1
        else:
            recipient.status = "failed"
            recipient.error_message = result.error or "Unknown provider error"
            failed += 1
        db.session.commit()

    campaign.sent_count = sent
    campaign.failed_count = failed
    campaign.sent_at = utcnow()
    campaign.status = "sent" if sent > 0 else "failed"
    db.session.commit()

    logger.info(
        "Campaign %s (%s): %s sent, %s failed of %s",
        campaign.id, campaign.name, sent, failed, campaign.total_count,
    )
    return campaign


def update_campaign(campaign: SmsCampaign, payload: dict) -> SmsCampaign:
    if campaign.status != "pending":
        raise ConflictError("Only pending campaigns can be edited")
    _apply_fields(campaign, payload)
    db.session.commit()
    return campaign


def cancel_campaign(campaign: SmsCampaign) -> SmsCampaign:
    if campaign.status != "pending":
        raise ConflictError("Only pending campaigns can be cancelled")
    campaign.status = "cancelled"
    db.session.commit()
    return campaign


def delete_campaign(campaign: SmsCampaign) -> None:
    """Pending and cancelled campaigns are removed; sent ones are kept as history."""
    if campaign.status not in ("pending", "cancelled"):
        raise ConflictError("Sent campaigns cannot be deleted")
    db.session.delete(campaign)
    db.session.commit()
