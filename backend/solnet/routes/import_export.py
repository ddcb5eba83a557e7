# Overview: Flask API routes for spreadsheet export and import of customers and inventory.

from flask import Blueprint, request, jsonify, g, current_app, send_file

from ..decorators import require_auth, require_permission, list_scope
from ..services import import_export_service
from ..validation import error_response
from solnet.time_utils import utcnow


XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

import_export_bp = Blueprint("import_export", __name__, url_prefix="/api/import-export")


def _download(buffer, name: str):
    return send_file(
        buffer,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"{name}_{utcnow():%Y%m%d}.xlsx",
    )


def _uploaded_rows():
    file = request.files.get("file")
    if file is None or not file.filename:
        return None
    return import_export_service.read_rows(file)


@import_export_bp.get("/export/customers")
@require_auth
@require_permission("IMPORT_EXPORT_DATA")
def export_customers_route():
    try:
        buffer = import_export_service.export_customers(**list_scope())
    except ValueError as e:
        return error_response(e)
    return _download(buffer, "customers")


@import_export_bp.get("/export/inventory")
@require_auth
@require_permission("IMPORT_EXPORT_DATA")
def export_inventory_route():
    try:
        buffer = import_export_service.export_inventory(**list_scope())
    except ValueError as e:
        return error_response(e)
    return _download(buffer, "inventory")


@import_export_bp.post("/import/customers")
@require_auth
@require_permission("IMPORT_EXPORT_DATA")
def import_customers_route():
    """Multipart upload: file=<.xlsx|.csv>; customers are matched by phone."""
    try:
        rows = _uploaded_rows()
        if rows is None:
            return jsonify({"error": "file is required"}), 400
        result = import_export_service.import_customers(rows, default_location_id=g.location_id)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to import customers")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(result)


@import_export_bp.post("/import/inventory")
@require_auth
@require_permission("IMPORT_EXPORT_DATA")
def import_inventory_route():
    """Multipart upload: file=<.xlsx|.csv>; items are matched by sku."""
    try:
        rows = _uploaded_rows()
        if rows is None:
            return jsonify({"error": "file is required"}), 400
        result = import_export_service.import_inventory(rows, default_location_id=g.location_id)
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to import inventory")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(result)
