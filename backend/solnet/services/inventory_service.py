# Overview: Service-layer operations for inventory items; CRUD, restock and stock adjustment.

from __future__ import annotations

from ..extensions import db
from ..models import InventoryItem
from ..validation import ConflictError, NotFoundError, ValidationError
from solnet.time_utils import utcnow
from .listing import paginate
from .location_service import ensure_in_scope, scope_query


# Accessories are inventory items filed under this category
ACCESSORY_CATEGORY = "accessories"

INVENTORY_MUTABLE_FIELDS = {
    "name",
    "sku",
    "category",
    "brand",
    "model",
    "description",
    "purchase_price_cents",
    "sale_price_cents",
    "quantity",
    "min_stock_level",
    "reorder_point",
    "reorder_quantity",
    "lead_time_days",
    "supplier",
    "barcode",
    "is_public",
    "is_active",
    "location_id",
}


def get_item(item_id: int, *, is_admin: bool = True, user_location_id: int | None = None) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError("Inventory item not found")
    ensure_in_scope(item.location_id, is_admin=is_admin, user_location_id=user_location_id)
    return item


def scoped_items_query(*, location_id: int | None, is_admin: bool):
    query = db.session.query(InventoryItem).filter(InventoryItem.is_active.is_(True))
    return scope_query(query, InventoryItem.location_id, location_id, is_admin=is_admin)


def list_items(
    *,
    location_id: int | None,
    is_admin: bool,
    search: str | None = None,
    category: str | None = None,
    low_stock: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = scoped_items_query(location_id=location_id, is_admin=is_admin)
    if search and search.strip():
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(
            InventoryItem.name.ilike(like),
            InventoryItem.sku.ilike(like),
            InventoryItem.brand.ilike(like),
            InventoryItem.barcode.ilike(like),
        ))
    if category:
        query = query.filter(InventoryItem.category == category)
    if low_stock:
        query = query.filter(InventoryItem.quantity <= InventoryItem.min_stock_level)
    query = query.order_by(InventoryItem.name.asc(), InventoryItem.id.asc())
    return paginate(query, page, per_page)


def low_stock_items(*, location_id: int | None, is_admin: bool) -> list[InventoryItem]:
    return (
        scoped_items_query(location_id=location_id, is_admin=is_admin)
        .filter(InventoryItem.quantity <= InventoryItem.min_stock_level)
        .order_by(InventoryItem.quantity.asc(), InventoryItem.name.asc())
        .all()
    )


def list_public_items(category: str | None = None) -> list[InventoryItem]:
    query = db.session.query(InventoryItem).filter(
        InventoryItem.is_active.is_(True), InventoryItem.is_public.is_(True)
    )
    if category:
        query = query.filter(InventoryItem.category == category)
    return query.order_by(InventoryItem.name.asc()).all()


def _ensure_unique_sku(sku: str, exclude_id: int | None = None) -> None:
    query = db.session.query(InventoryItem).filter(InventoryItem.sku == sku)
    if exclude_id is not None:
        query = query.filter(InventoryItem.id != exclude_id)
    if query.first():
        raise ConflictError("SKU already exists.")


def new_item(patch: dict, *, default_location_id: int | None = None) -> InventoryItem:
    """Build and add an item without committing."""
    _ensure_unique_sku(patch["sku"])

    item = InventoryItem()
    for key, value in patch.items():
        if key in INVENTORY_MUTABLE_FIELDS:
            setattr(item, key, value)
    if item.location_id is None:
        item.location_id = default_location_id
    if item.quantity:
        item.last_restocked = utcnow()

    db.session.add(item)
    return item


def create_item(patch: dict, *, default_location_id: int | None = None) -> InventoryItem:
    item = new_item(patch, default_location_id=default_location_id)
    db.session.commit()
    return item


def update_item(item: InventoryItem, patch: dict) -> InventoryItem:
    if "sku" in patch and patch["sku"] != item.sku:
        _ensure_unique_sku(patch["sku"], exclude_id=item.id)

    for key, value in patch.items():
        if key in INVENTORY_MUTABLE_FIELDS:
            setattr(item, key, value)
    db.session.commit()
    return item


def deactivate_item(item: InventoryItem) -> InventoryItem:
    """Soft delete; sale lines keep referencing the row."""
    item.is_active = False
    db.session.commit()
    return item


def _int_quantity(value, field: str = "quantity") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    return value


def add_stock(item: InventoryItem, quantity) -> InventoryItem:
    """Restock without committing; callers batching several items commit once."""
    quantity = _int_quantity(quantity)
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    item.quantity += quantity
    item.last_restocked = utcnow()
    return item


def restock(item: InventoryItem, quantity) -> InventoryItem:
    add_stock(item, quantity)
    db.session.commit()
    return item


def set_quantity(item: InventoryItem, quantity) -> InventoryItem:
    """Physical count correction: on-hand becomes exactly quantity."""
    quantity = _int_quantity(quantity)
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")
    item.quantity = quantity
    db.session.commit()
    return item
