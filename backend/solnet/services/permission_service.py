# Overview: Service-layer operations for permission; role checks and security event logging.

"""
Permission Checking and Security Event Logging

Each worker has one role; the role maps to a fixed permission set
(permissions/roles.py). Checks fail closed: an unknown role grants nothing.
Denials are written to the security_events audit table; grants are not.
"""

from ..extensions import db
from ..models import SecurityEvent, User
from ..permissions import DEFAULT_ROLE_PERMISSIONS, get_permission_definition, get_role_permissions
from solnet.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    location_id: int | None = None,
) -> SecurityEvent:
    """
    Append an event to the audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED / LOGIN_SUCCESS
    - USER_CREATED / USER_DEACTIVATED
    """
    event = SecurityEvent(
        user_id=user_id,
        location_id=location_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_user_permissions(user: User) -> set[str]:
    """All permission codes granted by the user's role."""
    if not user or not user.is_active:
        return set()
    return get_role_permissions(user.role)


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Raise PermissionDeniedError unless the user holds permission_code.

    The denial is logged before raising.
    """
    if user_has_permission(user, permission_code):
        return

    log_security_event(
        user_id=user.id if user else None,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Missing permission: {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
        location_id=user.location_id if user else None,
    )
    raise PermissionDeniedError(f"Missing permission: {permission_code}")


def list_roles() -> list[dict]:
    """Roles with their permission definitions, for the workers screen."""
    roles = []
    for role, codes in DEFAULT_ROLE_PERMISSIONS.items():
        roles.append({
            "name": role,
            "permissions": [get_permission_definition(code) for code in codes],
        })
    return roles
