# Overview: Service-layer operations for auth; password hashing, credential checks and user creation.

"""
Authentication Service

Every repair ticket, status change and sale is attributed to a worker, so
accounts are individual and passwords are stored as bcrypt hashes.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters with upper case, lower case and a digit
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import Location, User
from ..models.auth import USER_ROLES
from ..validation import ConflictError, NotFoundError, ValidationError
from solnet.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt (cost 12)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is constant-time. A malformed stored hash verifies as
    False rather than raising.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def validate_role(role: str) -> str:
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")
    return role


def create_user(
    username: str,
    email: str,
    password: str,
    role: str = "technician",
    location_id: int | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
) -> User:
    """
    Create a worker account.

    Raises:
        ValidationError / PasswordValidationError: bad role or weak password
        ConflictError: username or email already taken
        NotFoundError: location does not exist
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email:
        raise ValidationError("username and email are required")

    validate_role(role)

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    if location_id is not None:
        location = db.session.get(Location, location_id)
        if not location:
            raise NotFoundError("Location not found")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        location_id=location_id,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Check credentials by username or email.

    Returns the active user on success, None otherwise. Updates
    last_login_at on success.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == (identifier or "").lower())
    ).first()

    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    """Self-service password change; the current password must match."""
    if not current_password or not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()
