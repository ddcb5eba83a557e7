from __future__ import annotations

from ..extensions import db
from solnet.time_utils import to_utc_z


SMS_STATUSES = ("pending", "sent", "delivered", "failed", "cancelled")

TARGET_GROUPS = (
    "all_customers",
    "active_customers",
    "recent_customers",
    "high_value_customers",
    "custom_filter",
    "selected_recipients",
    "recipient_group",
)


class SmsTemplate(db.Model):
    """Reusable message body with {placeholders}."""
    __tablename__ = "sms_templates"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    message = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(64), nullable=True)
    variables = db.Column(db.JSON, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "message": self.message,
            "category": self.category,
            "variables": self.variables or [],
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SmsCampaign(db.Model):
    """
    Bulk SMS send to a filtered set of customers.

    status follows the SMS status enum: pending until sent (or scheduled),
    then sent, failed or cancelled.
    """
    __tablename__ = "sms_campaigns"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    template_id = db.Column(db.Integer, db.ForeignKey("sms_templates.id"), nullable=True)
    message = db.Column(db.Text, nullable=False)
    occasion = db.Column(db.String(64), nullable=True)

    target_group = db.Column(db.String(32), nullable=False, default="all_customers")
    custom_filters = db.Column(db.JSON, nullable=True)
    recipient_group_id = db.Column(db.Integer, db.ForeignKey("recipient_groups.id"), nullable=True)
    selected_customer_ids = db.Column(db.JSON, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending")
    scheduled_date = db.Column(db.DateTime(timezone=True), nullable=True)
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    total_count = db.Column(db.Integer, nullable=False, default=0)
    sent_count = db.Column(db.Integer, nullable=False, default=0)
    failed_count = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    template = db.relationship("SmsTemplate")
    recipients = db.relationship(
        "SmsCampaignRecipient",
        backref="campaign",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SmsCampaignRecipient.id",
    )

    def to_dict(self, include_recipients: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "template_id": self.template_id,
            "message": self.message,
            "occasion": self.occasion,
            "target_group": self.target_group,
            "custom_filters": self.custom_filters,
            "recipient_group_id": self.recipient_group_id,
            "selected_customer_ids": self.selected_customer_ids,
            "status": self.status,
            "scheduled_date": to_utc_z(self.scheduled_date),
            "sent_at": to_utc_z(self.sent_at),
            "total_count": self.total_count,
            "sent_count": self.sent_count,
            "failed_count": self.failed_count,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_recipients:
            data["recipients"] = [r.to_dict() for r in self.recipients]
        return data


class SmsCampaignRecipient(db.Model):
    __tablename__ = "sms_campaign_recipients"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey("sms_campaigns.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    phone_number = db.Column(db.String(32), nullable=False)
    message = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending")
    provider_message_id = db.Column(db.String(64), nullable=True)
    error_message = db.Column(db.Text, nullable=True)
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "phone_number": self.phone_number,
            "message": self.message,
            "status": self.status,
            "provider_message_id": self.provider_message_id,
            "error_message": self.error_message,
            "sent_at": to_utc_z(self.sent_at),
        }


class RecipientGroup(db.Model):
    """Saved list of customers for bulk SMS targeting."""
    __tablename__ = "recipient_groups"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    members = db.relationship(
        "RecipientGroupMember",
        backref="group",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "member_count": len(self.members),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class RecipientGroupMember(db.Model):
    __tablename__ = "recipient_group_members"
    __table_args__ = (
        db.UniqueConstraint("group_id", "customer_id", name="uq_recipient_group_members_group_customer"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey("recipient_groups.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    added_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    added_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer")


class SmsQueue(db.Model):
    """
    Outbound SMS awaiting delivery.

    A row is retried until it is sent or attempts reaches max_attempts,
    at which point it is marked failed.
    """
    __tablename__ = "sms_queue"
    __table_args__ = (
        db.Index("ix_sms_queue_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    phone = db.Column(db.String(32), nullable=False)
    message = db.Column(db.Text, nullable=False)
    message_type = db.Column(db.String(32), nullable=False, default="general")
    status = db.Column(db.String(16), nullable=False, default="pending")
    attempts = db.Column(db.Integer, nullable=False, default=0)
    max_attempts = db.Column(db.Integer, nullable=False, default=3)
    last_attempt_at = db.Column(db.DateTime(timezone=True), nullable=True)
    error_message = db.Column(db.Text, nullable=True)
    provider_message_id = db.Column(db.String(64), nullable=True)
    # "metadata" is reserved on declarative models
    meta = db.Column("metadata", db.JSON, nullable=True)
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phone": self.phone,
            "message": self.message,
            "message_type": self.message_type,
            "status": self.status,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "last_attempt_at": to_utc_z(self.last_attempt_at),
            "error_message": self.error_message,
            "provider_message_id": self.provider_message_id,
            "metadata": self.meta,
            "sent_at": to_utc_z(self.sent_at),
            "created_at": to_utc_z(self.created_at),
        }
