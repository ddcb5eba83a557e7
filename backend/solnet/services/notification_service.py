# Overview: Service-layer operations for in-app notifications and per-user preferences.

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Notification, NotificationPreference, NotificationType, User
from ..models.notifications import NOTIFICATION_PRIORITIES, NOTIFICATION_STATUSES
from ..validation import NotFoundError, ValidationError
from solnet.time_utils import utcnow

logger = logging.getLogger(__name__)


DEFAULT_LIMIT = 50
MAX_LIMIT = 200

# (name, category, default title, default message)
DEFAULT_NOTIFICATION_TYPES = [
    ("device_registered", "device", "New device registered", "A new device was registered for repair."),
    ("device_status_update", "device", "Device status updated", "A repair ticket changed status."),
    ("payment_status_update", "device", "Payment status updated", "The payment status of a repair ticket changed."),
    ("device_tracked", "device", "Device tracked", "A customer looked up a repair ticket."),
    ("low_stock", "inventory", "Low stock", "An inventory item is running low."),
    ("sms_failed", "sms", "SMS delivery failed", "An SMS could not be delivered after all retries."),
]


def seed_notification_types() -> int:
    """Insert missing default types. Returns how many were created."""
    existing = {t.name for t in db.session.query(NotificationType).all()}
    created = 0
    for name, category, title, message in DEFAULT_NOTIFICATION_TYPES:
        if name in existing:
            continue
        db.session.add(NotificationType(
            name=name,
            category=category,
            default_title=title,
            default_message=message,
            is_active=True,
        ))
        created += 1
    db.session.commit()
    return created


def get_type(type_name: str) -> NotificationType:
    ntype = db.session.query(NotificationType).filter_by(name=type_name).first()
    if not ntype:
        raise NotFoundError(f"Notification type '{type_name}' not found")
    return ntype


def create_notification(
    type_name: str,
    recipient_id: int,
    *,
    title: str | None = None,
    message: str | None = None,
    data: dict | None = None,
    priority: str = "normal",
    sender_id: int | None = None,
    related_entity_type: str | None = None,
    related_entity_id: int | None = None,
    commit: bool = True,
) -> Notification:
    ntype = get_type(type_name)
    if priority not in NOTIFICATION_PRIORITIES:
        raise ValidationError(f"priority must be one of: {', '.join(NOTIFICATION_PRIORITIES)}")

    notification = Notification(
        type_id=ntype.id,
        recipient_id=recipient_id,
        sender_id=sender_id,
        title=title or ntype.default_title or "Notification",
        message=message or ntype.default_message or "You have a new notification",
        data=data,
        priority=priority,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        status="unread",
    )
    db.session.add(notification)
    if commit:
        db.session.commit()
    return notification


def _in_app_enabled(user_id: int, type_id: int) -> bool:
    pref = db.session.query(NotificationPreference).filter_by(user_id=user_id, type_id=type_id).first()
    return pref.in_app_enabled if pref else True


def notify_admins(type_name: str, **kwargs) -> list[Notification]:
    """
    One notification per active admin, honoring their preferences.

    Callers treat this as a side effect: failures are logged and never
    abort the primary write.
    """
    try:
        ntype = get_type(type_name)
        admins = db.session.query(User).filter(User.role == "admin", User.is_active.is_(True)).all()
        created = []
        for admin in admins:
            if not _in_app_enabled(admin.id, ntype.id):
                continue
            created.append(create_notification(type_name, admin.id, commit=False, **kwargs))
        db.session.commit()
        return created
    except Exception:
        db.session.rollback()
        logger.exception("Failed to notify admins (%s)", type_name)
        return []


def list_notifications(
    user_id: int,
    *,
    status: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Notification]:
    query = db.session.query(Notification).filter(Notification.recipient_id == user_id)
    if status and status != "all":
        if status not in NOTIFICATION_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(NOTIFICATION_STATUSES)}")
        query = query.filter(Notification.status == status)

    limit = min(max(limit or DEFAULT_LIMIT, 1), MAX_LIMIT)
    offset = max(offset or 0, 0)
    return (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def unread_count(user_id: int) -> int:
    return db.session.query(Notification).filter_by(recipient_id=user_id, status="unread").count()


def _get_own(user_id: int, notification_id: int) -> Notification:
    notification = db.session.query(Notification).filter_by(id=notification_id, recipient_id=user_id).first()
    if not notification:
        raise NotFoundError("Notification not found")
    return notification


def mark_read(user_id: int, notification_id: int) -> Notification:
    notification = _get_own(user_id, notification_id)
    if notification.status == "unread":
        notification.status = "read"
        notification.read_at = utcnow()
        db.session.commit()
    return notification


def mark_all_read(user_id: int) -> int:
    now = utcnow()
    rows = db.session.query(Notification).filter_by(recipient_id=user_id, status="unread").all()
    for row in rows:
        row.status = "read"
        row.read_at = now
    db.session.commit()
    return len(rows)


def archive(user_id: int, notification_id: int) -> Notification:
    notification = _get_own(user_id, notification_id)
    notification.status = "archived"
    notification.archived_at = utcnow()
    db.session.commit()
    return notification


def get_preferences(user_id: int) -> list[dict]:
    """Every active type with the user's switches (defaults when unset)."""
    prefs = {
        p.type_id: p
        for p in db.session.query(NotificationPreference).filter_by(user_id=user_id).all()
    }
    result = []
    for ntype in db.session.query(NotificationType).filter_by(is_active=True).order_by(NotificationType.name).all():
        pref = prefs.get(ntype.id)
        result.append({
            "type": ntype.name,
            "description": ntype.description,
            "in_app_enabled": pref.in_app_enabled if pref else True,
            "sms_enabled": pref.sms_enabled if pref else False,
            "email_enabled": pref.email_enabled if pref else False,
        })
    return result


def update_preference(user_id: int, type_name: str, payload: dict) -> NotificationPreference:
    ntype = get_type(type_name)
    pref = db.session.query(NotificationPreference).filter_by(user_id=user_id, type_id=ntype.id).first()
    if pref is None:
        pref = NotificationPreference(user_id=user_id, type_id=ntype.id)
        db.session.add(pref)

    for field in ("in_app_enabled", "sms_enabled", "email_enabled"):
        if field in payload:
            if not isinstance(payload[field], bool):
                raise ValidationError(f"{field} must be a boolean")
            setattr(pref, field, payload[field])

    db.session.commit()
    return pref
