# Overview: Service-layer operations for workers; listing, admin edits and self-service profile.

from __future__ import annotations

from ..extensions import db
from ..models import Location, User
from ..validation import ConflictError, NotFoundError, ValidationError
from . import auth_service, session_service


ADMIN_EDITABLE_FIELDS = {"username", "email", "first_name", "last_name", "phone", "role", "location_id", "is_active"}
PROFILE_EDITABLE_FIELDS = {"first_name", "last_name", "email", "phone"}


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users(
    *,
    role: str | None = None,
    location_id: int | None = None,
    active: bool | None = None,
) -> list[User]:
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role)
    if location_id is not None:
        query = query.filter(User.location_id == location_id)
    if active is not None:
        query = query.filter(User.is_active.is_(active))
    return query.order_by(User.username.asc()).all()


def list_workers(location_id: int | None = None) -> list[dict]:
    """Active workers for assignment dropdowns."""
    users = list_users(location_id=location_id, active=True)
    return [
        {
            "id": u.id,
            "username": u.username,
            "full_name": u.full_name,
            "role": u.role,
            "location_id": u.location_id,
            "location_name": u.location.name if u.location else None,
        }
        for u in users
    ]


def _check_unique(user: User, *, username: str | None, email: str | None) -> None:
    if username and username != user.username:
        if db.session.query(User).filter(User.username == username, User.id != user.id).first():
            raise ConflictError("Username already exists")
    if email and email != user.email:
        if db.session.query(User).filter(User.email == email, User.id != user.id).first():
            raise ConflictError("Email already exists")


def update_user(user_id: int, patch: dict, *, acting_user_id: int, new_password: str | None = None) -> User:
    """
    Admin edit of a worker.

    Deactivating a worker revokes their sessions. A worker cannot
    deactivate their own account.
    """
    user = get_user(user_id)

    unknown = set(patch) - ADMIN_EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    if "email" in patch and patch["email"]:
        patch["email"] = patch["email"].strip().lower()
    if "role" in patch:
        auth_service.validate_role(patch["role"])
    if patch.get("location_id") is not None:
        if not db.session.get(Location, patch["location_id"]):
            raise NotFoundError("Location not found")

    _check_unique(user, username=patch.get("username"), email=patch.get("email"))

    deactivating = patch.get("is_active") is False and user.is_active
    if deactivating and user.id == acting_user_id:
        raise ValidationError("You cannot deactivate your own account")

    for key, value in patch.items():
        setattr(user, key, value)

    if new_password:
        user.password_hash = auth_service.hash_password(new_password)

    db.session.commit()

    if deactivating:
        session_service.revoke_all_user_sessions(user.id, reason="Account deactivated")

    return user


def deactivate_user(user_id: int, *, acting_user_id: int) -> User:
    return update_user(user_id, {"is_active": False}, acting_user_id=acting_user_id)


def update_profile(user: User, payload: dict) -> User:
    """
    Self-service profile update.

    A password change needs "current_password" and "new_password".
    """
    payload = dict(payload or {})
    current_password = payload.pop("current_password", None)
    new_password = payload.pop("new_password", None)

    unknown = set(payload) - PROFILE_EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    if payload.get("email"):
        payload["email"] = payload["email"].strip().lower()
        _check_unique(user, username=None, email=payload["email"])

    for key, value in payload.items():
        setattr(user, key, value.strip() if isinstance(value, str) else value)

    if new_password:
        auth_service.change_password(user, current_password, new_password)
    else:
        db.session.commit()

    return user
