# Overview: Service-layer operations for repair tickets; intake, edits, status and payment changes.

"""
Device (repair ticket) Service

Status is a plain field: any status may be set from any other. Each change
writes a DeviceStatusHistory row. Completing or delivering a ticket also
settles its payment status:
- delivered with a cost  -> paid
- completed with a cost  -> pending
- either without a cost  -> paid
unless the caller passes an explicit payment status.

Admin notifications and customer SMS are side effects: they run after the
ticket is committed and their failures are only logged.
"""

from __future__ import annotations

import logging
import secrets

from ..extensions import db
from ..models import Brand, Customer, Device, DeviceFeedback, DeviceModel, DeviceStatusHistory, DeviceType, ServiceType, User
from ..models.devices import CLOSED_DEVICE_STATUSES, DEVICE_STATUSES, PAYMENT_STATUSES
from ..validation import NotFoundError, ValidationError
from solnet.time_utils import utcnow
from . import notification_service, settings_service, sms_messages, sms_queue_service, tracking_service
from .listing import paginate
from .location_service import ensure_in_scope, scope_query

logger = logging.getLogger(__name__)


DEVICE_MUTABLE_FIELDS = {
    "customer_id",
    "assigned_technician_id",
    "device_type_id",
    "brand_id",
    "model_id",
    "service_type_id",
    "serial_number",
    "problem_description",
    "diagnosis",
    "repair_notes",
    "accessories",
    "estimated_cost_cents",
    "total_cost_cents",
    "priority",
    "estimated_completion_date",
    "picked_up_at",
}


def get_device(device_id: int, *, is_admin: bool = True, user_location_id: int | None = None) -> Device:
    device = db.session.get(Device, device_id)
    if not device:
        raise NotFoundError("Device not found")
    ensure_in_scope(device.location_id, is_admin=is_admin, user_location_id=user_location_id)
    return device


def list_devices(
    *,
    location_id: int | None,
    is_admin: bool,
    status: str | None = None,
    search: str | None = None,
    customer_id: int | None = None,
    technician_id: int | None = None,
    active_only: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = db.session.query(Device).outerjoin(Customer, Device.customer_id == Customer.id)
    query = scope_query(query, Device.location_id, location_id, is_admin=is_admin)

    if status:
        if status not in DEVICE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(DEVICE_STATUSES)}")
        query = query.filter(Device.status == status)
    if active_only:
        query = query.filter(Device.status.notin_(CLOSED_DEVICE_STATUSES))
    if customer_id is not None:
        query = query.filter(Device.customer_id == customer_id)
    if technician_id is not None:
        query = query.filter(Device.assigned_technician_id == technician_id)
    if search and search.strip():
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Device.receipt_number.ilike(like),
            Device.serial_number.ilike(like),
            Device.brand_name.ilike(like),
            Device.model_name.ilike(like),
            Device.problem_description.ilike(like),
            Customer.name.ilike(like),
            Customer.phone.ilike(like),
        ))

    query = query.order_by(Device.created_at.desc(), Device.id.desc())
    return paginate(query, page, per_page)


def _resolve_catalog(device: Device) -> None:
    """Copy catalog names onto the ticket and check referenced ids exist."""
    device_type = db.session.get(DeviceType, device.device_type_id) if device.device_type_id else None
    if device.device_type_id and not device_type:
        raise NotFoundError("Device type not found")
    device.device_type_name = device_type.name if device_type else None

    brand = db.session.get(Brand, device.brand_id) if device.brand_id else None
    if device.brand_id and not brand:
        raise NotFoundError("Brand not found")
    device.brand_name = brand.name if brand else None

    model = db.session.get(DeviceModel, device.model_id) if device.model_id else None
    if device.model_id and not model:
        raise NotFoundError("Model not found")
    if model and brand and model.brand_id != brand.id:
        raise ValidationError("Model does not belong to the selected brand")
    device.model_name = model.name if model else None

    if device.service_type_id and not db.session.get(ServiceType, device.service_type_id):
        raise NotFoundError("Service type not found")

    if device.assigned_technician_id:
        technician = db.session.get(User, device.assigned_technician_id)
        if not technician or not technician.is_active:
            raise NotFoundError("Assigned technician not found")


def _enqueue_customer_sms(device: Device, builder, setting_key: str, message_type: str) -> None:
    try:
        if not settings_service.get_bool_setting("sms", setting_key, True):
            return
        customer = device.customer
        if not customer or not customer.phone:
            return
        sms_queue_service.enqueue(
            customer.phone,
            builder(device, customer.name),
            message_type=message_type,
            metadata={"device_id": device.id, "status": device.status},
        )
    except Exception:
        db.session.rollback()
        logger.exception("Failed to enqueue %s SMS for device %s", message_type, device.id)


def create_device(patch: dict, *, user: User, location_id: int | None, is_admin: bool = False) -> Device:
    customer = db.session.get(Customer, patch.get("customer_id"))
    if not customer or (not is_admin and customer.location_id != location_id):
        raise NotFoundError("Customer not found")

    device = Device()
    for key, value in patch.items():
        if key in DEVICE_MUTABLE_FIELDS:
            setattr(device, key, value)

    device.location_id = location_id if location_id is not None else customer.location_id
    device.created_by_user_id = user.id
    device.status = "registered"
    device.payment_status = "pending"
    device.priority = device.priority or "normal"
    # Placeholder until the id is known
    device.receipt_number = f"PENDING-{secrets.token_hex(8)}"

    _resolve_catalog(device)

    db.session.add(device)
    db.session.flush()

    device.receipt_number = tracking_service.generate_receipt_number(device)
    db.session.add(DeviceStatusHistory(
        device_id=device.id,
        status="registered",
        notes="Device registered",
        changed_by_user_id=user.id,
    ))
    db.session.commit()

    notification_service.notify_admins(
        "device_registered",
        message=f"{device.device_type_name or 'Device'} registered for {customer.name} ({device.receipt_number})",
        data={"receipt_number": device.receipt_number, "customer_name": customer.name},
        sender_id=user.id,
        related_entity_type="device",
        related_entity_id=device.id,
    )
    _enqueue_customer_sms(device, sms_messages.device_registration_message, "notify_device_registration", "device_registration")
    return device


def update_device(device: Device, patch: dict, *, is_admin: bool = True, user_location_id: int | None = None) -> Device:
    if "customer_id" in patch:
        customer = db.session.get(Customer, patch["customer_id"])
        if not customer:
            raise NotFoundError("Customer not found")
        ensure_in_scope(customer.location_id, is_admin=is_admin, user_location_id=user_location_id)

    for key, value in patch.items():
        if key in DEVICE_MUTABLE_FIELDS:
            setattr(device, key, value)

    if {"device_type_id", "brand_id", "model_id", "service_type_id", "assigned_technician_id"} & set(patch):
        _resolve_catalog(device)

    db.session.commit()
    return device


def delete_device(device: Device) -> None:
    db.session.delete(device)
    db.session.commit()


def auto_payment_status(device: Device, new_status: str) -> str | None:
    """Payment status implied by a completed/delivered transition, else None."""
    if new_status not in ("completed", "delivered"):
        return None
    if device.total_cost_cents and device.total_cost_cents > 0:
        return "paid" if new_status == "delivered" else "pending"
    return "paid"


def update_status(
    device: Device,
    new_status: str,
    *,
    user: User,
    notes: str | None = None,
    payment_status: str | None = None,
) -> Device:
    if new_status not in DEVICE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(DEVICE_STATUSES)}")
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")

    old_status = device.status
    now = utcnow()

    device.status = new_status
    if new_status == "completed" and not device.completed_at:
        device.completed_at = now
    if new_status == "delivered":
        device.delivered_at = now
        if not device.picked_up_at:
            device.picked_up_at = now

    implied = payment_status or auto_payment_status(device, new_status)
    if implied:
        device.payment_status = implied

    db.session.add(DeviceStatusHistory(
        device_id=device.id,
        status=new_status,
        notes=notes,
        changed_by_user_id=user.id,
    ))
    db.session.commit()

    notification_service.notify_admins(
        "device_status_update",
        message=f"{device.receipt_number}: {old_status} -> {new_status}",
        data={
            "old_status": old_status,
            "new_status": new_status,
            "payment_status": device.payment_status,
            "notes": notes or "",
            "updated_by": user.username,
        },
        sender_id=user.id,
        related_entity_type="device",
        related_entity_id=device.id,
    )
    if new_status != old_status:
        _enqueue_customer_sms(device, sms_messages.status_update_message, "notify_status_updates", "status_update")
    return device


def update_payment_status(device: Device, payment_status: str, *, user: User, notes: str | None = None) -> Device:
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(
            "Invalid payment status. Must be: pending, paid, partial, or refunded"
        )

    device.payment_status = payment_status
    if notes:
        device.repair_notes = f"{device.repair_notes}\n{notes}" if device.repair_notes else notes
    db.session.commit()

    notification_service.notify_admins(
        "payment_status_update",
        message=f"{device.receipt_number}: payment {payment_status}",
        data={"payment_status": payment_status, "notes": notes or "", "updated_by": user.username},
        sender_id=user.id,
        related_entity_type="device",
        related_entity_id=device.id,
    )
    return device


def status_history(device: Device) -> list[DeviceStatusHistory]:
    return (
        db.session.query(DeviceStatusHistory)
        .filter(DeviceStatusHistory.device_id == device.id)
        .order_by(DeviceStatusHistory.created_at.desc(), DeviceStatusHistory.id.desc())
        .all()
    )


def add_feedback(device: Device, *, rating, comment: str | None = None, would_recommend: bool | None = None) -> DeviceFeedback:
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("rating must be an integer between 1 and 5")
    if would_recommend is not None and not isinstance(would_recommend, bool):
        raise ValidationError("would_recommend must be a boolean")

    feedback = DeviceFeedback(
        device_id=device.id,
        customer_id=device.customer_id,
        rating=rating,
        comment=(comment or "").strip() or None,
        would_recommend=would_recommend,
    )
    db.session.add(feedback)
    db.session.commit()
    return feedback
