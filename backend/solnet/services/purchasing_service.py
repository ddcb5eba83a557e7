# Overview: Service-layer operations for suppliers and purchase orders; the order lifecycle and receiving into stock.

"""
Purchasing Service

LIFECYCLE:
1. draft: lines are being edited
2. submitted: sent for approval
3. approved: ordered from the supplier
4. received: delivered; stock has been added
cancelled is reachable from draft, submitted and approved. Submitted,
approved and cancelled orders can be reopened as drafts. A received order
is final.

Receiving restocks each line through inventory_service in one transaction.
Lines without an inventory item create one at the order's location, or
attach to an existing item with the same SKU.
"""

from __future__ import annotations

from ..extensions import db
from ..models import InventoryItem, PurchaseOrder, PurchaseOrderItem, Supplier
from ..models.purchasing import PURCHASE_ORDER_PRIORITIES, PURCHASE_ORDER_STATUSES
from ..validation import ConflictError, MAX_AMOUNT_CENTS, NotFoundError, ValidationError
from solnet.time_utils import utcnow
from . import inventory_service
from .concurrency import lock_for_update, run_with_retry
from .inventory_prediction_service import predictions_for
from .listing import paginate
from .location_service import ensure_in_scope, scope_query


SUPPLIER_MUTABLE_FIELDS = {
    "name",
    "contact_person",
    "email",
    "phone",
    "address",
    "city",
    "country",
    "website",
    "payment_terms",
    "notes",
    "is_active",
}

ORDER_MUTABLE_FIELDS = {
    "supplier_id",
    "location_id",
    "priority",
    "expected_delivery_date",
    "notes",
}

CANCELLABLE_STATUSES = ("draft", "submitted", "approved")
REOPENABLE_STATUSES = ("submitted", "approved", "cancelled")
DELETABLE_STATUSES = ("draft", "cancelled")


# =============================================================================
# SUPPLIERS
# =============================================================================

def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")
    return supplier


def list_suppliers(*, search: str | None = None, include_inactive: bool = False) -> list[Supplier]:
    query = db.session.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.is_active.is_(True))
    if search and search.strip():
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Supplier.name.ilike(like),
            Supplier.contact_person.ilike(like),
            Supplier.email.ilike(like),
            Supplier.phone.ilike(like),
        ))
    return query.order_by(Supplier.name.asc()).all()


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Supplier).filter(db.func.lower(Supplier.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    if query.first():
        raise ConflictError("Supplier name already exists")


def create_supplier(patch: dict) -> Supplier:
    patch["name"] = patch["name"].strip()
    _ensure_unique_name(patch["name"])

    supplier = Supplier()
    for key, value in patch.items():
        if key in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, key, value)
    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(supplier: Supplier, patch: dict) -> Supplier:
    if patch.get("name"):
        patch["name"] = patch["name"].strip()
        _ensure_unique_name(patch["name"], exclude_id=supplier.id)

    for key, value in patch.items():
        if key in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, key, value)
    db.session.commit()
    return supplier


def deactivate_supplier(supplier: Supplier) -> Supplier:
    """Soft delete; existing purchase orders keep their supplier."""
    supplier.is_active = False
    db.session.commit()
    return supplier


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

def get_order(order_id: int, *, is_admin: bool = True, user_location_id: int | None = None) -> PurchaseOrder:
    order = db.session.get(PurchaseOrder, order_id)
    if not order:
        raise NotFoundError("Purchase order not found")
    ensure_in_scope(order.location_id, is_admin=is_admin, user_location_id=user_location_id)
    return order


def list_orders(
    *,
    location_id: int | None,
    is_admin: bool,
    status: str | None = None,
    supplier_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = scope_query(db.session.query(PurchaseOrder), PurchaseOrder.location_id, location_id, is_admin=is_admin)
    if status:
        if status not in PURCHASE_ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PURCHASE_ORDER_STATUSES)}")
        query = query.filter(PurchaseOrder.status == status)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    query = query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
    return paginate(query, page, per_page, serialize=lambda o: o.to_dict(include_items=False))


def _check_header(patch: dict) -> None:
    priority = patch.get("priority")
    if priority is not None and priority not in PURCHASE_ORDER_PRIORITIES:
        raise ValidationError(f"priority must be one of: {', '.join(PURCHASE_ORDER_PRIORITIES)}")
    if patch.get("supplier_id") is not None:
        supplier = db.session.get(Supplier, patch["supplier_id"])
        if not supplier or not supplier.is_active:
            raise NotFoundError("Supplier not found")


def _positive_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def _build_lines(items, location_id: int | None) -> list[PurchaseOrderItem]:
    """
    Turn request lines into PurchaseOrderItem rows.

    A line either references an inventory item at the order's location
    (name, sku and unit price default from the item) or names new stock.
    """
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    lines = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        quantity = _positive_int(raw.get("quantity"), f"items[{index}].quantity")

        unit_price = raw.get("unit_price_cents")
        if unit_price is not None:
            if isinstance(unit_price, bool) or not isinstance(unit_price, int):
                raise ValidationError(f"items[{index}].unit_price_cents must be an integer")
            if unit_price < 0 or unit_price > MAX_AMOUNT_CENTS:
                raise ValidationError(f"items[{index}].unit_price_cents out of range")

        name = raw.get("name")
        sku = raw.get("sku")
        item_id = raw.get("inventory_item_id")
        if item_id is not None:
            item = db.session.get(InventoryItem, item_id)
            if not item or not item.is_active or item.location_id != location_id:
                raise NotFoundError(f"Inventory item {item_id} not found")
            name = name or item.name
            sku = sku or item.sku
            if unit_price is None:
                unit_price = item.purchase_price_cents
        elif not isinstance(name, str) or not name.strip():
            raise ValidationError(f"items[{index}].name is required for new stock")

        unit_price = unit_price or 0
        lines.append(PurchaseOrderItem(
            inventory_item_id=item_id,
            name=name.strip(),
            sku=sku.strip() if isinstance(sku, str) and sku.strip() else None,
            quantity=quantity,
            unit_price_cents=unit_price,
            total_price_cents=unit_price * quantity,
        ))
    return lines


def create_order(patch: dict, items, *, user_id: int | None, default_location_id: int | None = None) -> PurchaseOrder:
    _check_header(patch)
    location_id = patch.get("location_id", default_location_id)

    order = PurchaseOrder(
        supplier_id=patch.get("supplier_id"),
        location_id=location_id,
        created_by_user_id=user_id,
        status="draft",
        priority=patch.get("priority") or "normal",
        expected_delivery_date=patch.get("expected_delivery_date"),
        notes=patch.get("notes"),
    )
    order.items = _build_lines(items or [], location_id)
    order.recompute_totals()

    db.session.add(order)
    db.session.flush()
    order.order_number = f"PO-{utcnow().year}-{order.id:06d}"
    db.session.commit()
    return order


def update_order(order: PurchaseOrder, patch: dict, items=None) -> PurchaseOrder:
    """Edit a draft; a provided items list replaces every line."""
    if order.status != "draft":
        raise ConflictError(f"Cannot edit a {order.status} purchase order")
    _check_header(patch)

    for key, value in patch.items():
        if key in ORDER_MUTABLE_FIELDS:
            setattr(order, key, value)
    if items is not None or "location_id" in patch:
        if items is None:
            items = [line.to_dict() for line in order.items]
        order.items = _build_lines(items, order.location_id)
        order.recompute_totals()

    db.session.commit()
    return order


def delete_order(order: PurchaseOrder) -> None:
    if order.status not in DELETABLE_STATUSES:
        raise ConflictError(f"Cannot delete a {order.status} purchase order")
    db.session.delete(order)
    db.session.commit()


def _require_status(order: PurchaseOrder, allowed, action: str) -> None:
    if order.status not in allowed:
        raise ConflictError(f"Cannot {action} a {order.status} purchase order")


def submit_order(order: PurchaseOrder) -> PurchaseOrder:
    _require_status(order, ("draft",), "submit")
    if not order.items:
        raise ValidationError("Cannot submit a purchase order with no items")
    order.status = "submitted"
    order.submitted_at = utcnow()
    db.session.commit()
    return order


def approve_order(order: PurchaseOrder, *, user_id: int | None) -> PurchaseOrder:
    _require_status(order, ("submitted",), "approve")
    order.status = "approved"
    order.approved_by_user_id = user_id
    order.approved_at = utcnow()
    db.session.commit()
    return order


def cancel_order(order: PurchaseOrder, reason: str | None = None) -> PurchaseOrder:
    _require_status(order, CANCELLABLE_STATUSES, "cancel")
    reason = reason.strip() if isinstance(reason, str) else ""
    order.status = "cancelled"
    order.notes = f"Cancelled: {reason or 'No reason provided'}"
    db.session.commit()
    return order


def reopen_order(order: PurchaseOrder) -> PurchaseOrder:
    _require_status(order, REOPENABLE_STATUSES, "reopen")
    order.status = "draft"
    order.submitted_at = None
    order.approved_at = None
    order.approved_by_user_id = None
    db.session.commit()
    return order


def _received_quantities(order: PurchaseOrder, received) -> dict[int, int]:
    """Map line id -> units delivered. Lines not mentioned arrive in full."""
    quantities = {line.id: line.quantity for line in order.items}
    if received is None:
        return quantities
    if not isinstance(received, list):
        raise ValidationError("items must be a list")

    for index, raw in enumerate(received):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        line_id = raw.get("id")
        if line_id not in quantities:
            raise ValidationError(f"items[{index}].id is not a line of this purchase order")
        value = raw.get("received_quantity")
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"items[{index}].received_quantity must be >= 0")
        quantities[line_id] = value
    return quantities


def _stock_item_for(order: PurchaseOrder, line: PurchaseOrderItem, quantity: int) -> InventoryItem:
    if line.inventory_item_id is not None:
        item = db.session.get(InventoryItem, line.inventory_item_id)
        if not item:
            raise NotFoundError(f"Inventory item {line.inventory_item_id} not found")
    else:
        item = None
        if line.sku:
            item = db.session.query(InventoryItem).filter(InventoryItem.sku == line.sku).first()
        if item is None:
            return inventory_service.new_item(
                {
                    "name": line.name,
                    "sku": line.sku or f"{order.order_number}-{line.id}",
                    "purchase_price_cents": line.unit_price_cents,
                    "quantity": quantity,
                    "supplier": order.supplier.name if order.supplier else None,
                    "location_id": order.location_id,
                },
            )

    if item.location_id != order.location_id:
        raise ConflictError(f"SKU {item.sku} is stocked at another location")
    item.is_active = True
    inventory_service.add_stock(item, quantity)
    return item


def receive_order(order_id: int, received=None) -> PurchaseOrder:
    """
    Book an approved order into stock.

    received: optional [{"id": line_id, "received_quantity": n}]; a line
    delivered with 0 units adds nothing.
    """
    def _op():
        order = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("Purchase order not found")
        _require_status(order, ("approved",), "receive")

        quantities = _received_quantities(order, received)
        for line in order.items:
            quantity = quantities[line.id]
            line.received_quantity = quantity
            if quantity <= 0:
                continue
            item = _stock_item_for(order, line, quantity)
            db.session.flush()
            line.inventory_item_id = item.id

        order.status = "received"
        order.received_at = utcnow()
        db.session.commit()
        return order

    try:
        return run_with_retry(_op)
    except ValueError:
        db.session.rollback()
        raise


def draft_from_predictions(
    *,
    location_id: int | None,
    user_id: int | None,
    supplier_id: int | None = None,
) -> PurchaseOrder:
    """
    Draft an order for every item at location_id whose stockout prediction
    recommends reordering. Priority follows the worst risk level.
    """
    items = scope_query(
        db.session.query(InventoryItem).filter(InventoryItem.is_active.is_(True)),
        InventoryItem.location_id,
        location_id,
        is_admin=False,
    ).all()
    predictions = [p for p in predictions_for(items) if p.recommended_reorder > 0]
    if not predictions:
        raise ValidationError("No items need reordering")

    risks = {p.risk_level for p in predictions}
    if "critical" in risks:
        priority = "urgent"
    elif "high" in risks:
        priority = "high"
    else:
        priority = "normal"

    return create_order(
        {"supplier_id": supplier_id, "location_id": location_id, "priority": priority},
        [
            {"inventory_item_id": p.item.id, "quantity": p.recommended_reorder}
            for p in predictions
        ],
        user_id=user_id,
    )
