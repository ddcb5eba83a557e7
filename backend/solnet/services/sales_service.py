# Overview: Service-layer operations for counter sales; stock decrement and customer aggregates in one transaction.

"""
Sales Service

A sale is created in a single step: lines are priced, stock is checked and
decremented, and the customer's denormalized totals are bumped. Either all
of it is committed or none of it is.

Pricing:
- unit_price_cents defaults to the item's sale price
- line_total = quantity * unit_price
- total = subtotal + tax - discount (never below 0)
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Customer, InventoryItem, Sale, SaleItem, User
from ..models.sales import PAYMENT_METHODS
from ..validation import ConflictError, MAX_AMOUNT_CENTS, NotFoundError, ValidationError
from solnet.time_utils import start_of_day, utcnow
from .concurrency import lock_for_update, run_with_retry
from .listing import paginate
from .location_service import ensure_in_scope, scope_query


class InsufficientStockError(ConflictError):
    """Raised when a sale asks for more units than are on hand."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _non_negative_cents(value, field: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < 0 or value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} out of range")
    return value


def _parse_lines(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        item_id = raw.get("inventory_item_id")
        quantity = raw.get("quantity")
        if isinstance(item_id, bool) or not isinstance(item_id, int):
            raise ValidationError(f"items[{index}].inventory_item_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")
        unit_price = raw.get("unit_price_cents")
        if unit_price is not None:
            unit_price = _non_negative_cents(unit_price, f"items[{index}].unit_price_cents")
        lines.append({"inventory_item_id": item_id, "quantity": quantity, "unit_price_cents": unit_price})
    return lines


def create_sale(payload: dict, *, user: User, location_id: int | None, is_admin: bool = False) -> Sale:
    """Workers may only sell their own location's stock to their own location's customers."""
    lines = _parse_lines(payload.get("items"))
    tax_cents = _non_negative_cents(payload.get("tax_cents"), "tax_cents")
    discount_cents = _non_negative_cents(payload.get("discount_cents"), "discount_cents")

    payment_method = payload.get("payment_method") or "cash"
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    customer_id = payload.get("customer_id")
    notes = payload.get("notes")

    def _op():
        customer = None
        if customer_id is not None:
            customer = db.session.get(Customer, customer_id)
            if not customer or (not is_admin and customer.location_id != location_id):
                raise NotFoundError("Customer not found")

        item_ids = sorted({line["inventory_item_id"] for line in lines})
        items = {
            item.id: item
            for item in lock_for_update(
                db.session.query(InventoryItem).filter(InventoryItem.id.in_(item_ids))
            ).all()
        }

        requested: dict[int, int] = {}
        for line in lines:
            item = items.get(line["inventory_item_id"])
            if not item or not item.is_active or (not is_admin and item.location_id != location_id):
                raise NotFoundError(f"Inventory item {line['inventory_item_id']} not found")
            requested[item.id] = requested.get(item.id, 0) + line["quantity"]

        insufficient = [
            {"inventory_item_id": item_id, "requested_quantity": qty, "on_hand": items[item_id].quantity}
            for item_id, qty in requested.items()
            if items[item_id].quantity < qty
        ]
        if insufficient:
            raise InsufficientStockError("Insufficient stock", details={"items": insufficient})

        sale = Sale(
            customer_id=customer_id,
            location_id=location_id,
            sales_person_id=user.id,
            payment_method=payment_method,
            payment_status="paid",
            notes=notes,
        )
        subtotal = 0
        for line in lines:
            item = items[line["inventory_item_id"]]
            unit_price = line["unit_price_cents"]
            if unit_price is None:
                unit_price = item.sale_price_cents or 0
            line_total = unit_price * line["quantity"]
            subtotal += line_total
            item.quantity -= line["quantity"]
            sale.items.append(SaleItem(
                inventory_item_id=item.id,
                quantity=line["quantity"],
                unit_price_cents=unit_price,
                line_total_cents=line_total,
            ))

        sale.subtotal_cents = subtotal
        sale.tax_cents = tax_cents
        sale.discount_cents = discount_cents
        sale.total_cents = max(0, subtotal + tax_cents - discount_cents)

        if customer:
            customer.total_spent_cents = (customer.total_spent_cents or 0) + sale.total_cents
            customer.total_visits = (customer.total_visits or 0) + 1
            customer.last_visit_at = utcnow()

        db.session.add(sale)
        db.session.commit()
        return sale

    try:
        return run_with_retry(_op)
    except ValueError:
        db.session.rollback()
        raise


def get_sale(sale_id: int, *, is_admin: bool = True, user_location_id: int | None = None) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    ensure_in_scope(sale.location_id, is_admin=is_admin, user_location_id=user_location_id)
    return sale


def list_sales(
    *,
    location_id: int | None,
    is_admin: bool,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    customer_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = scope_query(db.session.query(Sale), Sale.location_id, location_id, is_admin=is_admin)
    if date_from:
        query = query.filter(Sale.created_at >= date_from)
    if date_to:
        query = query.filter(Sale.created_at <= date_to)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    return paginate(query, page, per_page)


def todays_sales(*, location_id: int | None, is_admin: bool) -> dict:
    query = scope_query(db.session.query(Sale), Sale.location_id, location_id, is_admin=is_admin)
    sales = (
        query.filter(Sale.created_at >= start_of_day())
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )
    return {
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "total_cents": sum(s.total_cents for s in sales),
    }
