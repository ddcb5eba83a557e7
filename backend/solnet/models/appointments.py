from __future__ import annotations

from ..extensions import db
from solnet.time_utils import to_utc_z


APPOINTMENT_STATUSES = ("scheduled", "confirmed", "in_progress", "completed", "cancelled")


class Appointment(db.Model):
    """Booked visit (drop-off, pickup or on-site service) for a customer."""
    __tablename__ = "appointments"
    __table_args__ = (
        db.Index("ix_appointments_date", "appointment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)
    assigned_to_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    appointment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=60)
    status = db.Column(db.String(16), nullable=False, default="scheduled")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("appointments", lazy=True))
    assigned_to = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "location_id": self.location_id,
            "assigned_to_user_id": self.assigned_to_user_id,
            "title": self.title,
            "description": self.description,
            "appointment_date": to_utc_z(self.appointment_date),
            "duration_minutes": self.duration_minutes,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
