# Overview: Flask API routes for workers (users), their roles and the caller's own profile.

"""
Worker management routes

- /api/users    admin CRUD over worker accounts (MANAGE_USERS)
- /api/workers  active-worker list for assignment dropdowns, self profile
- /api/roles    roles with their permission sets
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..services import auth_service, permission_service, user_service
from ..validation import error_response


users_bp = Blueprint("users", __name__, url_prefix="/api/users")
workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")
roles_bp = Blueprint("roles", __name__, url_prefix="/api/roles")


def _parse_active(raw: str | None) -> bool | None:
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in {"1", "true", "yes"}


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    """Query params: role, location_id, active (true/false)."""
    users = user_service.list_users(
        role=request.args.get("role") or None,
        location_id=request.args.get("location_id", type=int),
        active=_parse_active(request.args.get("active")),
    )
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)})


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    data = request.get_json(silent=True) or {}

    username = data.get("username")
    email = data.get("email")
    password = data.get("password")
    if not all([username, email, password]):
        return jsonify({"error": "username, email, and password required"}), 400

    try:
        user = auth_service.create_user(
            username=username,
            email=email,
            password=password,
            role=data.get("role") or "technician",
            location_id=data.get("location_id"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            phone=data.get("phone"),
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="USER_CREATED",
        success=True,
        resource=f"/api/users/{user.id}",
        action="CREATE",
        reason=f"Created {user.username} with role {user.role}",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
        location_id=g.location_id,
    )
    return jsonify({"user": user.to_dict()}), 201


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def get_user_route(user_id: int):
    try:
        user = user_service.get_user(user_id)
    except ValueError as e:
        return error_response(e)
    return jsonify({"user": user.to_dict()})


@users_bp.put("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route(user_id: int):
    """Admin edit; "password" resets the worker's password."""
    data = dict(request.get_json(silent=True) or {})
    new_password = data.pop("password", None)

    try:
        user = user_service.update_user(
            user_id,
            data,
            acting_user_id=g.current_user.id,
            new_password=new_password,
        )
    except ValueError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict()})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def deactivate_user_route(user_id: int):
    try:
        user = user_service.deactivate_user(user_id, acting_user_id=g.current_user.id)
    except ValueError as e:
        return error_response(e)

    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="USER_DEACTIVATED",
        success=True,
        resource=f"/api/users/{user.id}",
        action="DEACTIVATE",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
        location_id=g.location_id,
    )
    return jsonify({"user": user.to_dict(), "message": "User deactivated"})


# =============================================================================
# WORKERS
# =============================================================================

@workers_bp.get("")
@require_auth
@require_permission("VIEW_WORKERS")
def list_workers_route():
    """Admins may pass ?location_id=; everyone else sees their own location."""
    location_id = request.args.get("location_id", type=int) if g.is_admin else g.location_id
    workers = user_service.list_workers(location_id=location_id)
    return jsonify({"items": workers, "count": len(workers)})


@workers_bp.get("/profile")
@require_auth
def get_profile_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(g.current_user)),
    })


@workers_bp.put("/profile")
@require_auth
def update_profile_route():
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.update_profile(g.current_user, data)
    except ValueError as e:
        return error_response(e)

    return jsonify({"user": user.to_dict()})


# =============================================================================
# ROLES
# =============================================================================

@roles_bp.get("")
@require_auth
@require_permission("VIEW_WORKERS")
def list_roles_route():
    return jsonify({"roles": permission_service.list_roles()})
