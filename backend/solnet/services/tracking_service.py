# Overview: Receipt/tracking code generation and the public tracking lookup.

"""
Tracking codes

Format: <PREFIX>-<MMDD><NN>, e.g. SolNet-102407
- PREFIX comes from TRACKING_CODE_PREFIX
- MMDD is the intake month and day
- NN is the device id modulo 100, zero padded

Codes are printed on paper receipts, so they are kept short. When the
short form is already taken the full device id (at least three digits)
replaces NN, with a -2, -3... suffix if even that is taken.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Device
from ..models.devices import STATUS_LABELS
from ..validation import NotFoundError
from solnet.time_utils import to_utc_z, utcnow
from . import notification_service


def tracking_prefix() -> str:
    return current_app.config.get("TRACKING_CODE_PREFIX") or "SolNet"


def generate_receipt_number(device: Device, now=None) -> str:
    """device must already have an id (flush before calling)."""
    now = now or utcnow()
    base = f"{tracking_prefix()}-{now.strftime('%m%d')}"

    candidate = f"{base}{device.id % 100:02d}"
    if not _receipt_taken(candidate, device.id):
        return candidate

    # At least three digits so the fallback never equals a short form
    full = f"{base}{device.id:03d}"
    candidate = full
    suffix = 1
    while _receipt_taken(candidate, device.id):
        suffix += 1
        candidate = f"{full}-{suffix}"
    return candidate


def _receipt_taken(candidate: str, device_id: int) -> bool:
    return (
        db.session.query(Device.id)
        .filter(Device.receipt_number == candidate, Device.id != device_id)
        .first()
    ) is not None


def find_by_tracking_code(code: str) -> Device | None:
    """
    Receipt number first (case-insensitive), then a bare numeric device id.
    """
    code = (code or "").strip()
    if not code:
        return None

    device = (
        db.session.query(Device)
        .filter(db.func.lower(Device.receipt_number) == code.lower())
        .first()
    )
    if device:
        return device

    if code.isdigit():
        return db.session.get(Device, int(code))
    return None


def public_view(device: Device) -> dict:
    """Fields safe to show to anyone holding the receipt."""
    customer = device.customer
    return {
        "receipt_number": device.receipt_number,
        "status": device.status,
        "status_label": device.status_label,
        "device_type": device.device_type_name,
        "brand": device.brand_name,
        "model": device.model_name,
        "problem_description": device.problem_description,
        "priority": device.priority,
        "payment_status": device.payment_status,
        "total_cost_cents": device.total_cost_cents,
        "estimated_completion_date": to_utc_z(device.estimated_completion_date),
        "customer_first_name": customer.first_name if customer else None,
        "created_at": to_utc_z(device.created_at),
        "updated_at": to_utc_z(device.updated_at),
        "history": [
            {"status": h.status, "status_label": STATUS_LABELS.get(h.status, h.status), "date": to_utc_z(h.created_at)}
            for h in device.history
        ],
    }


def track(code: str) -> dict:
    device = find_by_tracking_code(code)
    if not device:
        raise NotFoundError("Device not found. Please check your tracking code.")

    view = public_view(device)

    notification_service.notify_admins(
        "device_tracked",
        message=f"Customer tracked device {device.receipt_number}",
        data={"tracking_code": code, "tracked_at": to_utc_z(utcnow())},
        related_entity_type="device",
        related_entity_id=device.id,
    )
    return view
