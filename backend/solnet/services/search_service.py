# Overview: Global search across devices, customers and sales for the header search box.

from __future__ import annotations

from ..extensions import db
from ..models import Customer, Device, Sale
from .location_service import scope_query


RESULT_LIMIT = 10


def search(
    term: str,
    *,
    location_id: int | None,
    is_admin: bool,
    permissions: set[str],
    limit: int = RESULT_LIMIT,
) -> dict:
    """
    Match term against devices (receipt, serial, brand, model, owner),
    customers (name, phone, email) and sales (customer name or phone).

    Each list is location-scoped and present only when the caller may view
    that kind of record; a blank term returns empty lists.
    """
    results = {"devices": [], "customers": [], "sales": []}
    if not term or not term.strip():
        return results
    like = f"%{term.strip()}%"

    if "VIEW_DEVICES" in permissions:
        query = db.session.query(Device).outerjoin(Customer, Device.customer_id == Customer.id)
        query = scope_query(query, Device.location_id, location_id, is_admin=is_admin)
        devices = (
            query.filter(db.or_(
                Device.receipt_number.ilike(like),
                Device.serial_number.ilike(like),
                Device.brand_name.ilike(like),
                Device.model_name.ilike(like),
                Customer.name.ilike(like),
                Customer.phone.ilike(like),
            ))
            .order_by(Device.created_at.desc(), Device.id.desc())
            .limit(limit)
            .all()
        )
        results["devices"] = [d.to_dict() for d in devices]

    if "VIEW_CUSTOMERS" in permissions:
        query = db.session.query(Customer).filter(Customer.is_active.is_(True))
        query = scope_query(query, Customer.location_id, location_id, is_admin=is_admin)
        customers = (
            query.filter(db.or_(
                Customer.name.ilike(like),
                Customer.phone.ilike(like),
                Customer.email.ilike(like),
            ))
            .order_by(Customer.name.asc())
            .limit(limit)
            .all()
        )
        results["customers"] = [c.to_dict() for c in customers]

    if "VIEW_SALES" in permissions:
        query = db.session.query(Sale).join(Customer, Sale.customer_id == Customer.id)
        query = scope_query(query, Sale.location_id, location_id, is_admin=is_admin)
        sales = (
            query.filter(db.or_(Customer.name.ilike(like), Customer.phone.ilike(like)))
            .order_by(Sale.created_at.desc(), Sale.id.desc())
            .limit(limit)
            .all()
        )
        results["sales"] = [s.to_dict() for s in sales]

    return results
