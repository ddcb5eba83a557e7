# Overview: Service-layer operations for locations; CRUD plus the location scoping rules.

"""
Location Service

Scoping rules used by every location-owned listing:
- admins see all locations, optionally narrowed with ?location_id=
- everyone else is pinned to the location captured at login; a different
  requested location_id is refused
"""

from __future__ import annotations

from ..extensions import db
from ..models import Location
from ..validation import ConflictError, NotFoundError


class LocationAccessError(ValueError):
    """Raised when a worker asks for another location's data."""
    status_code = 403


def resolve_scope(*, is_admin: bool, user_location_id: int | None, requested_location_id: int | None = None) -> int | None:
    """
    Return the location_id to filter by, or None for "all locations".

    Non-admin workers without a location see only unassigned records.
    """
    if is_admin:
        return requested_location_id

    if requested_location_id is not None and requested_location_id != user_location_id:
        raise LocationAccessError("Access to this location is not allowed")
    return user_location_id


def scope_query(query, column, location_id: int | None, *, is_admin: bool):
    """Apply the location filter computed by resolve_scope()."""
    if location_id is not None:
        return query.filter(column == location_id)
    if not is_admin:
        return query.filter(column.is_(None))
    return query


def ensure_in_scope(record_location_id: int | None, *, is_admin: bool, user_location_id: int | None) -> None:
    """Single-record variant: hides other locations' rows as not found."""
    if is_admin:
        return
    if record_location_id != user_location_id:
        raise NotFoundError("Record not found")


def get_location(location_id: int) -> Location:
    location = db.session.get(Location, location_id)
    if not location:
        raise NotFoundError("Location not found")
    return location


def list_locations(*, active_only: bool = False) -> list[Location]:
    query = db.session.query(Location)
    if active_only:
        query = query.filter(Location.is_active.is_(True))
    return query.order_by(Location.name.asc()).all()


def _normalize_code(patch: dict) -> None:
    if patch.get("code"):
        patch["code"] = patch["code"].strip().upper()


def create_location(patch: dict) -> Location:
    _normalize_code(patch)
    if db.session.query(Location).filter_by(code=patch["code"]).first():
        raise ConflictError("Location code already exists")

    location = Location(**patch)
    db.session.add(location)
    db.session.commit()
    return location


def update_location(location_id: int, patch: dict) -> Location:
    location = get_location(location_id)
    _normalize_code(patch)

    code = patch.get("code")
    if code and code != location.code:
        if db.session.query(Location).filter_by(code=code).first():
            raise ConflictError("Location code already exists")

    for key, value in patch.items():
        setattr(location, key, value)
    db.session.commit()
    return location


def deactivate_location(location_id: int) -> Location:
    location = get_location(location_id)
    location.is_active = False
    db.session.commit()
    return location
