# Overview: Service-layer operations for appointments.

from __future__ import annotations

from datetime import date, datetime, timedelta

from ..extensions import db
from ..models import Appointment, Customer, User
from ..models.appointments import APPOINTMENT_STATUSES
from ..validation import NotFoundError, ValidationError
from .location_service import ensure_in_scope, scope_query


APPOINTMENT_MUTABLE_FIELDS = {
    "customer_id",
    "assigned_to_user_id",
    "title",
    "description",
    "appointment_date",
    "duration_minutes",
    "status",
    "notes",
    "location_id",
}


def get_appointment(appointment_id: int, *, is_admin: bool = True, user_location_id: int | None = None) -> Appointment:
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError("Appointment not found")
    ensure_in_scope(appointment.location_id, is_admin=is_admin, user_location_id=user_location_id)
    return appointment


def list_appointments(
    *,
    location_id: int | None,
    is_admin: bool,
    on_date: date | None = None,
    status: str | None = None,
    customer_id: int | None = None,
) -> list[Appointment]:
    query = scope_query(db.session.query(Appointment), Appointment.location_id, location_id, is_admin=is_admin)
    if on_date:
        start = datetime(on_date.year, on_date.month, on_date.day)
        query = query.filter(Appointment.appointment_date >= start, Appointment.appointment_date < start + timedelta(days=1))
    if status:
        _check_status(status)
        query = query.filter(Appointment.status == status)
    if customer_id is not None:
        query = query.filter(Appointment.customer_id == customer_id)
    return query.order_by(Appointment.appointment_date.asc(), Appointment.id.asc()).all()


def upcoming_count(*, location_id: int | None, is_admin: bool, now: datetime, days: int = 7) -> int:
    query = scope_query(db.session.query(Appointment), Appointment.location_id, location_id, is_admin=is_admin)
    return (
        query.filter(
            Appointment.appointment_date >= now,
            Appointment.appointment_date < now + timedelta(days=days),
            Appointment.status.in_(("scheduled", "confirmed")),
        )
        .count()
    )


def _check_status(status: str) -> None:
    if status not in APPOINTMENT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}")


def _check_references(patch: dict) -> None:
    if "customer_id" in patch and not db.session.get(Customer, patch["customer_id"]):
        raise NotFoundError("Customer not found")
    if patch.get("assigned_to_user_id") is not None and not db.session.get(User, patch["assigned_to_user_id"]):
        raise NotFoundError("Assigned user not found")
    if "status" in patch:
        _check_status(patch["status"])
    if "duration_minutes" in patch and patch["duration_minutes"] is not None and patch["duration_minutes"] <= 0:
        raise ValidationError("duration_minutes must be > 0")


def create_appointment(patch: dict, *, default_location_id: int | None = None) -> Appointment:
    _check_references(patch)

    appointment = Appointment()
    for key, value in patch.items():
        if key in APPOINTMENT_MUTABLE_FIELDS:
            setattr(appointment, key, value)
    if appointment.location_id is None:
        appointment.location_id = default_location_id

    db.session.add(appointment)
    db.session.commit()
    return appointment


def update_appointment(appointment: Appointment, patch: dict) -> Appointment:
    _check_references(patch)
    for key, value in patch.items():
        if key in APPOINTMENT_MUTABLE_FIELDS:
            setattr(appointment, key, value)
    db.session.commit()
    return appointment


def update_status(appointment: Appointment, status: str) -> Appointment:
    _check_status(status)
    appointment.status = status
    db.session.commit()
    return appointment


def delete_appointment(appointment: Appointment) -> None:
    db.session.delete(appointment)
    db.session.commit()
