# Overview: Shared list/pagination helper used by list endpoints.

from __future__ import annotations

from typing import Callable


def paginate(
    query,
    page: int | None = None,
    per_page: int | None = None,
    serialize: Callable | None = None,
) -> dict:
    """
    Run a list query with optional pagination.

    If page is None, returns all rows. per_page defaults to 20 (max 100).
    Returns {"items", "count"} plus a "pagination" block when paginated.
    """
    serialize = serialize or (lambda row: row.to_dict())

    if page is None:
        rows = query.all()
        return {
            "items": [serialize(r) for r in rows],
            "count": len(rows),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
