# Overview: Service-layer operations for users and passwords.

"""
Authentication Service

WHY: Every sale and ledger entry records who made it. Passwords are
hashed with bcrypt and checked for strength when an account is created.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with at least one letter and one digit
- Session tokens managed separately (see session_service.py)
- Users are never hard-deleted; sales and ledger rows keep pointing at
  them. Deactivating a user revokes their sessions.
- At least one active admin always remains.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from ..models.auth import VALID_ROLES, ROLE_ADMIN, ROLE_CASHIER
from ..validation import ConflictError, NotFoundError, ValidationError
from ..time_utils import utcnow
from . import session_service


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _clean_role(role: str | None) -> str:
    role = (role or "").strip().lower()
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of {list(VALID_ROLES)}")
    return role


def create_user(username: str, password: str, role: str = ROLE_CASHIER) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError: blank username, unknown role
        ConflictError: duplicate username
        PasswordValidationError: weak password
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username required")
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")

    role = _clean_role(role)

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Return the active user matching the credentials, or None.

    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _other_active_admins(user_id: int) -> int:
    return db.session.query(User).filter(
        User.id != user_id,
        User.role == ROLE_ADMIN,
        User.is_active.is_(True),
    ).count()


def update_user(user_id: int, payload: dict, *, acting_user_id: int) -> User:
    """
    Change a user's role, password or active flag.

    Only keys present in payload are changed. Deactivating revokes the
    user's sessions.

    Raises:
        NotFoundError: unknown user
        ValidationError: unknown role or field, self-deactivation, or the
            change would leave no active admin
        PasswordValidationError: weak password
    """
    user = get_user(user_id)

    unknown = sorted(set(payload) - {"role", "password", "is_active"})
    if unknown:
        raise ValidationError(f"Field not allowed: {unknown[0]}")

    role = _clean_role(payload["role"]) if "role" in payload else user.role
    is_active = user.is_active
    if "is_active" in payload:
        if not isinstance(payload["is_active"], bool):
            raise ValidationError("is_active must be true or false")
        is_active = payload["is_active"]

    if user.id == acting_user_id and not is_active:
        raise ValidationError("You cannot deactivate your own account")

    losing_admin = user.is_admin and user.is_active and (role != ROLE_ADMIN or not is_active)
    if losing_admin and _other_active_admins(user.id) == 0:
        raise ValidationError("At least one active admin is required")

    if payload.get("password"):
        user.password_hash = hash_password(payload["password"])

    was_active = user.is_active
    user.role = role
    user.is_active = is_active
    db.session.commit()

    if was_active and not is_active:
        session_service.revoke_user_sessions(user.id, reason="User account deactivated")
    return user


def deactivate_user(user_id: int, *, acting_user_id: int) -> User:
    return update_user(user_id, {"is_active": False}, acting_user_id=acting_user_id)
