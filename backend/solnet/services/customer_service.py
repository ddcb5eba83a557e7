# Overview: Service-layer operations for customers; search, CRUD and history.

from __future__ import annotations

from ..extensions import db
from ..models import Customer, Device, Sale
from ..validation import NotFoundError
from .listing import paginate
from .location_service import ensure_in_scope, scope_query


CUSTOMER_MUTABLE_FIELDS = {"name", "email", "phone", "address", "notes", "location_id", "is_active"}


def _search_filter(term: str):
    like = f"%{term.strip()}%"
    return db.or_(
        Customer.name.ilike(like),
        Customer.phone.ilike(like),
        Customer.email.ilike(like),
    )


def list_customers(
    *,
    location_id: int | None,
    is_admin: bool,
    search: str | None = None,
    include_inactive: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = db.session.query(Customer)
    query = scope_query(query, Customer.location_id, location_id, is_admin=is_admin)
    if not include_inactive:
        query = query.filter(Customer.is_active.is_(True))
    if search and search.strip():
        query = query.filter(_search_filter(search))
    query = query.order_by(Customer.created_at.desc(), Customer.id.desc())
    return paginate(query, page, per_page)


def quick_search(term: str, *, location_id: int | None, is_admin: bool, limit: int = 20) -> list[Customer]:
    if not term or not term.strip():
        return []
    query = db.session.query(Customer).filter(
        Customer.is_active.is_(True),
        _search_filter(term),
    )
    query = scope_query(query, Customer.location_id, location_id, is_admin=is_admin)
    return query.order_by(Customer.name.asc()).limit(limit).all()


def find_by_phone(phone: str) -> Customer | None:
    return (
        db.session.query(Customer)
        .filter(Customer.phone == phone.strip())
        .order_by(Customer.id.asc())
        .first()
    )


def get_customer(customer_id: int, *, is_admin: bool = True, user_location_id: int | None = None) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    ensure_in_scope(customer.location_id, is_admin=is_admin, user_location_id=user_location_id)
    return customer


def create_customer(patch: dict, *, default_location_id: int | None = None) -> Customer:
    customer = Customer()
    for key, value in patch.items():
        if key in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, key, value)
    if customer.location_id is None:
        customer.location_id = default_location_id
    if customer.email:
        customer.email = customer.email.lower()

    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer: Customer, patch: dict) -> Customer:
    for key, value in patch.items():
        if key in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, key, value)
    if customer.email:
        customer.email = customer.email.lower()
    db.session.commit()
    return customer


def deactivate_customer(customer: Customer) -> Customer:
    """Soft delete; devices and sales keep pointing at the row."""
    customer.is_active = False
    db.session.commit()
    return customer


def customer_devices(customer: Customer) -> list[Device]:
    return (
        db.session.query(Device)
        .filter(Device.customer_id == customer.id)
        .order_by(Device.created_at.desc(), Device.id.desc())
        .all()
    )


def customer_sales(customer: Customer) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )
