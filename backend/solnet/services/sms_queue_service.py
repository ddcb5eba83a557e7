# Overview: Service-layer operations for the outbound SMS queue; enqueue, drain with retries, admin views.

"""
SMS Queue

Repair-ticket messages are queued rather than sent inline so a provider
outage never blocks intake or status changes. The queue is drained by
process_pending(): from the CLI (`flask sms process-queue`), the admin
endpoint, or a cron job calling either.

Each processing pass takes the oldest pending rows with attempts left.
A row is marked failed once attempts reaches max_attempts.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import SmsQueue
from ..models.sms import SMS_STATUSES
from ..validation import ConflictError, NotFoundError, ValidationError
from solnet.time_utils import utcnow
from . import notification_service, sms_gateway

logger = logging.getLogger(__name__)


DEFAULT_BATCH_SIZE = 10
DEFAULT_MAX_ATTEMPTS = 3
MAX_LIST_LIMIT = 500


def enqueue(
    phone: str,
    message: str,
    *,
    message_type: str = "general",
    metadata: dict | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    commit: bool = True,
) -> SmsQueue:
    if not phone or not phone.strip():
        raise ValidationError("phone is required")
    if not message or not message.strip():
        raise ValidationError("message is required")

    row = SmsQueue(
        phone=phone.strip(),
        message=message,
        message_type=message_type,
        status="pending",
        attempts=0,
        max_attempts=max_attempts,
        meta=metadata,
    )
    db.session.add(row)
    if commit:
        db.session.commit()
    return row


def _attempt(row: SmsQueue) -> bool:
    row.attempts += 1
    row.last_attempt_at = utcnow()

    result = sms_gateway.send_sms(row.phone, row.message)
    if result.success:
        row.status = "sent"
        row.sent_at = utcnow()
        row.provider_message_id = result.sid
        row.error_message = None
        return True

    row.error_message = result.error or "Unknown provider error"
    if row.attempts >= row.max_attempts:
        row.status = "failed"
    return False


def process_pending(batch_size: int = DEFAULT_BATCH_SIZE, ids: list[int] | None = None) -> dict:
    """
    Try to deliver up to batch_size pending rows, oldest first.

    Returns {"processed", "sent", "failed", "retrying"}.
    """
    query = db.session.query(SmsQueue).filter(
        SmsQueue.status == "pending",
        SmsQueue.attempts < SmsQueue.max_attempts,
    )
    if ids:
        query = query.filter(SmsQueue.id.in_(ids))
    rows = query.order_by(SmsQueue.created_at.asc(), SmsQueue.id.asc()).limit(batch_size).all()

    summary = {"processed": 0, "sent": 0, "failed": 0, "retrying": 0}
    newly_failed = []

    for row in rows:
        summary["processed"] += 1
        if _attempt(row):
            summary["sent"] += 1
        elif row.status == "failed":
            summary["failed"] += 1
            newly_failed.append(row)
        else:
            summary["retrying"] += 1
        db.session.commit()

    for row in newly_failed:
        logger.error("SMS %s to %s failed after %s attempts", row.id, row.phone, row.attempts)
        notification_service.notify_admins(
            "sms_failed",
            message=f"SMS to {row.phone} failed after {row.attempts} attempts: {row.error_message}",
            data={"sms_queue_id": row.id, "message_type": row.message_type},
            priority="high",
            related_entity_type="sms_queue",
            related_entity_id=row.id,
        )

    return summary


def retry(ids: list[int] | None = None, batch_size: int = DEFAULT_BATCH_SIZE) -> dict:
    """Reset failed rows (all, or the given ids) to pending, then process them."""
    query = db.session.query(SmsQueue).filter(SmsQueue.status == "failed")
    if ids:
        query = query.filter(SmsQueue.id.in_(ids))
    rows = query.all()

    for row in rows:
        row.status = "pending"
        row.attempts = 0
        row.error_message = None
    db.session.commit()

    if rows:
        summary = process_pending(batch_size=max(batch_size, len(rows)), ids=[r.id for r in rows])
    else:
        summary = {"processed": 0, "sent": 0, "failed": 0, "retrying": 0}
    summary["reset"] = len(rows)
    return summary


def stats() -> dict:
    counts = dict(
        db.session.query(SmsQueue.status, db.func.count(SmsQueue.id))
        .group_by(SmsQueue.status)
        .all()
    )
    result = {status: int(counts.get(status, 0)) for status in SMS_STATUSES}
    result["total"] = sum(result.values())
    return result


def list_messages(status: str | None = "failed", limit: int | None = 100) -> list[SmsQueue]:
    query = db.session.query(SmsQueue)
    if status and status != "all":
        if status not in SMS_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(SMS_STATUSES)}")
        query = query.filter(SmsQueue.status == status)
    limit = min(max(limit or 100, 1), MAX_LIST_LIMIT)
    return query.order_by(SmsQueue.created_at.desc(), SmsQueue.id.desc()).limit(limit).all()


def cancel(queue_id: int) -> SmsQueue:
    row = db.session.get(SmsQueue, queue_id)
    if not row:
        raise NotFoundError("Queued message not found")
    if row.status != "pending":
        raise ConflictError("Only pending messages can be cancelled")
    row.status = "cancelled"
    db.session.commit()
    return row
