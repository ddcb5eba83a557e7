# Overview: Read-only aggregates for the dashboard and the analytics summary.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Customer, Device, Expense, InventoryItem, Sale, ServiceType
from ..models.devices import CLOSED_DEVICE_STATUSES, DEVICE_STATUSES
from solnet.time_utils import start_of_day, utcnow
from . import appointment_service, loan_invoice_service, settings_service
from .location_service import scope_query


def dashboard_stats(*, location_id: int | None, is_admin: bool) -> dict:
    now = utcnow()
    today = start_of_day(now)

    def scoped(query, column):
        return scope_query(query, column, location_id, is_admin=is_admin)

    total_customers = scoped(
        db.session.query(Customer).filter(Customer.is_active.is_(True)), Customer.location_id
    ).count()

    active_repairs = scoped(
        db.session.query(Device).filter(Device.status.notin_(CLOSED_DEVICE_STATUSES)), Device.location_id
    ).count()

    completed_today = scoped(
        db.session.query(Device).filter(Device.completed_at >= today), Device.location_id
    ).count()

    todays_revenue = scoped(
        db.session.query(db.func.coalesce(db.func.sum(Sale.total_cents), 0)).filter(Sale.created_at >= today),
        Sale.location_id,
    ).scalar()

    low_stock = scoped(
        db.session.query(InventoryItem).filter(
            InventoryItem.is_active.is_(True),
            InventoryItem.quantity <= InventoryItem.min_stock_level,
        ),
        InventoryItem.location_id,
    ).count()

    return {
        "total_customers": total_customers,
        "active_repairs": active_repairs,
        "completed_today": completed_today,
        "todays_revenue_cents": int(todays_revenue or 0),
        "low_stock_count": low_stock,
        "upcoming_appointments": appointment_service.upcoming_count(
            location_id=location_id, is_admin=is_admin, now=now
        ),
        "pending_loan_balance_cents": loan_invoice_service.outstanding_balance_cents(
            location_id=location_id, is_admin=is_admin
        ),
    }


def _month_keys(months: int, now: datetime) -> list[str]:
    """The last `months` months as YYYY-MM, oldest first, current month last."""
    year, month = now.year, now.month
    keys = []
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def _month_start(key: str) -> datetime:
    year, month = key.split("-")
    return datetime(int(year), int(month), 1)


def analytics_summary(*, location_id: int | None, is_admin: bool, months: int = 6) -> dict:
    months = min(max(months, 1), 24)
    now = utcnow()
    keys = _month_keys(months, now)
    since = _month_start(keys[0])

    sales = scope_query(
        db.session.query(Sale.created_at, Sale.total_cents).filter(Sale.created_at >= since),
        Sale.location_id, location_id, is_admin=is_admin,
    ).all()
    revenue = {k: 0 for k in keys}
    for created_at, total in sales:
        key = created_at.strftime("%Y-%m")
        if key in revenue:
            revenue[key] += total

    expenses = scope_query(
        db.session.query(Expense.expense_date, Expense.amount_cents).filter(Expense.expense_date >= since.date()),
        Expense.location_id, location_id, is_admin=is_admin,
    ).all()
    spent = {k: 0 for k in keys}
    for expense_date, amount in expenses:
        key = expense_date.strftime("%Y-%m")
        if key in spent:
            spent[key] += amount

    status_rows = scope_query(
        db.session.query(Device.status, db.func.count(Device.id)).group_by(Device.status),
        Device.location_id, location_id, is_admin=is_admin,
    ).all()
    counts = dict(status_rows)
    devices_by_status = {status: int(counts.get(status, 0)) for status in DEVICE_STATUSES}

    service_rows = scope_query(
        db.session.query(ServiceType.name, db.func.count(Device.id))
        .join(Device, Device.service_type_id == ServiceType.id)
        .group_by(ServiceType.name),
        Device.location_id, location_id, is_admin=is_admin,
    ).all()
    top_services = sorted(
        ({"service_type": name, "device_count": int(count)} for name, count in service_rows),
        key=lambda s: (-s["device_count"], s["service_type"]),
    )[:5]

    profile = settings_service.get_business_profile()
    monthly_target = profile.monthly_revenue_target_cents if profile else None
    current_revenue = revenue[keys[-1]]

    return {
        "months": keys,
        "revenue_by_month": [{"month": k, "total_cents": revenue[k]} for k in keys],
        "expenses_by_month": [{"month": k, "total_cents": spent[k]} for k in keys],
        "devices_by_status": devices_by_status,
        "top_service_types": top_services,
        "revenue_target": {
            "monthly_target_cents": monthly_target,
            "current_month_revenue_cents": current_revenue,
            "progress_percent": round(current_revenue * 100 / monthly_target, 1) if monthly_target else None,
        },
    }
