from __future__ import annotations

from ..extensions import db
from solnet.time_utils import to_utc_z


DEVICE_STATUSES = (
    "registered",
    "diagnosed",
    "in_progress",
    "waiting_parts",
    "completed",
    "ready_for_pickup",
    "delivered",
    "cancelled",
)

# Statuses after which a ticket no longer counts as an active repair
CLOSED_DEVICE_STATUSES = ("delivered", "cancelled")

PRIORITIES = ("normal", "high", "urgent")

PAYMENT_STATUSES = ("pending", "paid", "partial", "refunded")

STATUS_LABELS = {
    "registered": "Registered",
    "diagnosed": "Diagnosed",
    "in_progress": "In Progress",
    "waiting_parts": "Waiting for Parts",
    "completed": "Completed",
    "ready_for_pickup": "Ready for Pickup",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}


class Device(db.Model):
    """
    Repair ticket for a customer's device.

    Status is a plain field: any status may follow any other. Every change
    is recorded in DeviceStatusHistory. Type, brand and model names are
    copied from the catalog at intake so the ticket reads the same even if
    the catalog is edited later.
    """
    __tablename__ = "devices"
    __table_args__ = (
        db.Index("ix_devices_location_status", "location_id", "status"),
        db.Index("ix_devices_customer", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)
    assigned_technician_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    device_type_id = db.Column(db.Integer, db.ForeignKey("device_types.id"), nullable=False)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True)
    model_id = db.Column(db.Integer, db.ForeignKey("device_models.id"), nullable=True)
    service_type_id = db.Column(db.Integer, db.ForeignKey("service_types.id"), nullable=True)

    device_type_name = db.Column(db.String(128), nullable=True)
    brand_name = db.Column(db.String(128), nullable=True)
    model_name = db.Column(db.String(128), nullable=True)

    serial_number = db.Column(db.String(128), nullable=True)
    problem_description = db.Column(db.Text, nullable=False)
    diagnosis = db.Column(db.Text, nullable=True)
    repair_notes = db.Column(db.Text, nullable=True)
    accessories = db.Column(db.Text, nullable=True)

    estimated_cost_cents = db.Column(db.Integer, nullable=True)
    total_cost_cents = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(32), nullable=False, default="registered", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    priority = db.Column(db.String(16), nullable=False, default="normal")

    receipt_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    estimated_completion_date = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    picked_up_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("devices", lazy=True))
    location = db.relationship("Location", backref=db.backref("devices", lazy=True))
    assigned_technician = db.relationship("User", foreign_keys=[assigned_technician_id])
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    service_type = db.relationship("ServiceType")
    history = db.relationship(
        "DeviceStatusHistory",
        backref="device",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="DeviceStatusHistory.id",
    )

    @property
    def status_label(self) -> str:
        return STATUS_LABELS.get(self.status, self.status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "customer_phone": self.customer.phone if self.customer else None,
            "location_id": self.location_id,
            "assigned_technician_id": self.assigned_technician_id,
            "created_by_user_id": self.created_by_user_id,
            "device_type_id": self.device_type_id,
            "brand_id": self.brand_id,
            "model_id": self.model_id,
            "service_type_id": self.service_type_id,
            "service_type_name": self.service_type.name if self.service_type else None,
            "device_type": self.device_type_name,
            "brand": self.brand_name,
            "model": self.model_name,
            "serial_number": self.serial_number,
            "problem_description": self.problem_description,
            "diagnosis": self.diagnosis,
            "repair_notes": self.repair_notes,
            "accessories": self.accessories,
            "estimated_cost_cents": self.estimated_cost_cents,
            "total_cost_cents": self.total_cost_cents,
            "status": self.status,
            "status_label": self.status_label,
            "payment_status": self.payment_status,
            "priority": self.priority,
            "receipt_number": self.receipt_number,
            "estimated_completion_date": to_utc_z(self.estimated_completion_date),
            "completed_at": to_utc_z(self.completed_at),
            "picked_up_at": to_utc_z(self.picked_up_at),
            "delivered_at": to_utc_z(self.delivered_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class DeviceStatusHistory(db.Model):
    """One row per status change of a device (including intake)."""
    __tablename__ = "device_status_history"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    device_id = db.Column(db.Integer, db.ForeignKey("devices.id"), nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    changed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    changed_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "status": self.status,
            "status_label": STATUS_LABELS.get(self.status, self.status),
            "notes": self.notes,
            "changed_by_user_id": self.changed_by_user_id,
            "changed_by": self.changed_by.full_name if self.changed_by else None,
            "created_at": to_utc_z(self.created_at),
        }


class DeviceFeedback(db.Model):
    """Customer rating left after a repair."""
    __tablename__ = "device_feedback"
    __table_args__ = (
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_device_feedback_rating"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    device_id = db.Column(db.Integer, db.ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    would_recommend = db.Column(db.Boolean, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    device = db.relationship(
        "Device",
        backref=db.backref("feedback", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "customer_id": self.customer_id,
            "rating": self.rating,
            "comment": self.comment,
            "would_recommend": self.would_recommend,
            "created_at": to_utc_z(self.created_at),
        }
