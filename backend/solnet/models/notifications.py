from __future__ import annotations

from ..extensions import db
from solnet.time_utils import to_utc_z


NOTIFICATION_STATUSES = ("unread", "read", "archived")
NOTIFICATION_PRIORITIES = ("low", "normal", "high", "urgent")


class NotificationType(db.Model):
    """
    Catalog of in-app notification kinds.

    default_title/default_message are used when the caller does not
    provide its own text.
    """
    __tablename__ = "notification_types"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(32), nullable=False, default="system")
    default_title = db.Column(db.String(255), nullable=True)
    default_message = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "default_title": self.default_title,
            "default_message": self.default_message,
            "is_active": self.is_active,
        }


class Notification(db.Model):
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_recipient_status", "recipient_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type_id = db.Column(db.Integer, db.ForeignKey("notification_types.id"), nullable=False)
    recipient_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="unread")
    priority = db.Column(db.String(16), nullable=False, default="normal")

    related_entity_type = db.Column(db.String(32), nullable=True)
    related_entity_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)

    type = db.relationship("NotificationType")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.name if self.type else None,
            "recipient_id": self.recipient_id,
            "sender_id": self.sender_id,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "status": self.status,
            "priority": self.priority,
            "related_entity_type": self.related_entity_type,
            "related_entity_id": self.related_entity_id,
            "created_at": to_utc_z(self.created_at),
            "read_at": to_utc_z(self.read_at),
            "archived_at": to_utc_z(self.archived_at),
        }


class NotificationPreference(db.Model):
    """Per-user opt-out switches for a notification type."""
    __tablename__ = "notification_preferences"
    __table_args__ = (
        db.UniqueConstraint("user_id", "type_id", name="uq_notification_preferences_user_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    type_id = db.Column(db.Integer, db.ForeignKey("notification_types.id"), nullable=False)
    in_app_enabled = db.Column(db.Boolean, nullable=False, default=True)
    sms_enabled = db.Column(db.Boolean, nullable=False, default=False)
    email_enabled = db.Column(db.Boolean, nullable=False, default=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    type = db.relationship("NotificationType")

    def to_dict(self) -> dict:
        return {
            "type": self.type.name if self.type else None,
            "in_app_enabled": self.in_app_enabled,
            "sms_enabled": self.sms_enabled,
            "email_enabled": self.email_enabled,
        }
