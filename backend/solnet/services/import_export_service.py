# Overview: Spreadsheet export and import of customers and inventory (openpyxl).

"""
Import / Export

Exports are single-sheet .xlsx workbooks: a header row, then one row per
record. Imports read the first sheet (or a CSV file) with the same
headers; unknown columns are ignored.

Upsert keys:
- customers: phone
- inventory: sku

Every row is validated on its own. Bad rows are reported as
{"row": <spreadsheet row number>, "error": <message>} and skipped; the
good rows are committed together.
"""

from __future__ import annotations

import csv
import io

from openpyxl import Workbook, load_workbook

from ..extensions import db
from ..models import Customer, InventoryItem
from ..validation import ModelValidationPolicy, ValidationError, enforce_amounts, enforce_non_negative, validate_payload
from .location_service import scope_query


CUSTOMER_COLUMNS = ["name", "phone", "email", "address", "notes"]
CUSTOMER_EXPORT_COLUMNS = ["id", *CUSTOMER_COLUMNS, "total_spent_cents", "total_visits", "is_active"]

INVENTORY_COLUMNS = [
    "sku",
    "name",
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
]
INVENTORY_EXPORT_COLUMNS = ["id", *INVENTORY_COLUMNS, "is_active"]

CUSTOMER_IMPORT_POLICY = ModelValidationPolicy(
    writable_fields=set(CUSTOMER_COLUMNS),
    required_on_create={"name", "phone"},
)

INVENTORY_IMPORT_POLICY = ModelValidationPolicy(
    writable_fields=set(INVENTORY_COLUMNS),
    required_on_create={"sku", "name"},
)

SPREADSHEET_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}

# Columns that spreadsheets tend to turn into numbers
TEXT_KEY_COLUMNS = {"phone", "sku", "barcode"}


# =============================================================================
# Export
# =============================================================================

def _workbook_bytes(title: str, columns: list[str], rows) -> io.BytesIO:
    wb = Workbook()
    sheet = wb.active
    sheet.title = title
    sheet.append(columns)
    for row in rows:
        sheet.append(row)

    out = io.BytesIO()
    wb.save(out)
    out.seek(0)
    return out


def export_customers(*, location_id: int | None, is_admin: bool) -> io.BytesIO:
    query = scope_query(db.session.query(Customer), Customer.location_id, location_id, is_admin=is_admin)
    customers = query.order_by(Customer.id.asc()).all()
    return _workbook_bytes(
        "Customers",
        CUSTOMER_EXPORT_COLUMNS,
        ([getattr(c, col) for col in CUSTOMER_EXPORT_COLUMNS] for c in customers),
    )


def export_inventory(*, location_id: int | None, is_admin: bool) -> io.BytesIO:
    query = scope_query(db.session.query(InventoryItem), InventoryItem.location_id, location_id, is_admin=is_admin)
    items = query.order_by(InventoryItem.id.asc()).all()
    return _workbook_bytes(
        "Inventory",
        INVENTORY_EXPORT_COLUMNS,
        ([getattr(i, col) for col in INVENTORY_EXPORT_COLUMNS] for i in items),
    )


# =============================================================================
# Import
# =============================================================================

def read_rows(file_storage) -> list[dict]:
    """Rows of an uploaded .xlsx or .csv file as header -> value dicts."""
    filename = file_storage.filename or ""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

    if ext == "csv":
        stream = io.StringIO(file_storage.stream.read().decode("utf-8-sig"))
        return [dict(row) for row in csv.DictReader(stream)]

    if ext in SPREADSHEET_EXTENSIONS:
        wb = load_workbook(file_storage.stream, data_only=True)
        data = list(wb.active.values)
        if not data:
            return []
        headers = [str(h).strip() if h is not None else "" for h in data[0]]
        return [
            {headers[i]: row[i] for i in range(min(len(headers), len(row)))}
            for row in data[1:]
            if any(cell is not None and str(cell).strip() != "" for cell in row)
        ]

    raise ValidationError("Unsupported file type (use .xlsx or .csv)")


def _clean_row(raw: dict, columns: list[str]) -> dict:
    cleaned = {}
    for key in columns:
        if key not in raw:
            continue
        value = raw[key]
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                value = None
        elif isinstance(value, float) and value.is_integer():
            value = int(value)
        if key in TEXT_KEY_COLUMNS and value is not None:
            value = str(value)
        cleaned[key] = value
    return cleaned


def _import(rows: list[dict], *, model, columns, policy, key: str, find, after_validate=None, defaults=None) -> dict:
    result = {"created": 0, "updated": 0, "errors": []}
    seen: dict[str, object] = {}

    for index, raw in enumerate(rows, start=2):
        try:
            payload = _clean_row(raw, columns)
            existing = seen.get(payload.get(key)) or (find(payload[key]) if payload.get(key) else None)
            patch = validate_payload(model=model, payload=payload, policy=policy, partial=existing is not None)
            if after_validate:
                after_validate(patch)
        except ValidationError as e:
            result["errors"].append({"row": index, "error": str(e)})
            continue

        if existing is None:
            record = model(**{**(defaults or {}), **patch})
            db.session.add(record)
            result["created"] += 1
        else:
            record = existing
            for field, value in patch.items():
                setattr(record, field, value)
            if record not in db.session.new:
                result["updated"] += 1
        seen[patch.get(key, getattr(record, key))] = record

    db.session.commit()
    return result


def import_customers(rows: list[dict], *, default_location_id: int | None = None) -> dict:
    def find(phone):
        return db.session.query(Customer).filter(Customer.phone == phone).first()

    return _import(
        rows,
        model=Customer,
        columns=CUSTOMER_COLUMNS,
        policy=CUSTOMER_IMPORT_POLICY,
        key="phone",
        find=find,
        defaults={"location_id": default_location_id},
    )


def import_inventory(rows: list[dict], *, default_location_id: int | None = None) -> dict:
    def find(sku):
        return db.session.query(InventoryItem).filter(InventoryItem.sku == sku).first()

    def check(patch):
        enforce_amounts(patch, "purchase_price_cents", "sale_price_cents")
        enforce_non_negative(patch, "quantity", "min_stock_level", "reorder_point", "reorder_quantity", "lead_time_days")

    return _import(
        rows,
        model=InventoryItem,
        columns=INVENTORY_COLUMNS,
        policy=INVENTORY_IMPORT_POLICY,
        key="sku",
        find=find,
        after_validate=check,
        defaults={"location_id": default_location_id},
    )
