# Overview: Service-layer operations for accounts; passwords, authentication and user provisioning.

"""
Authentication and User Provisioning Service

WHY: Every action must be attributable. Accounts are created by admins
only (there is no self sign-up) and passwords are hashed with bcrypt.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters; upper, lower, digit and special char required
- Emails are stored lower-cased and are unique
- Deactivating a user revokes all of their sessions
- Changing a password revokes every other session of that user
"""

import logging
import re

import bcrypt
from flask import current_app
from sqlalchemy import func

from ..errors import AuthenticationRequired, DuplicateUser, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import ROLES, ROLE_STAFF, Actor, require_capability
from ..time_utils import utcnow
from ..validation import clean_text
from . import session_service
from .concurrency import commit_or_raise, flush_or_raise, is_unique_violation

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    code = "weak_password"


class InvalidCurrentPassword(ValidationError):
    code = "invalid_current_password"


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

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

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, email=user.email, name=user.name, role=user.role)


def resolve_actor(user_id: int | None) -> Actor | None:
    """Role lookup: user id -> Actor, or None for unknown / deactivated users."""
    if user_id is None:
        return None
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return actor_for(user)


def authenticate(email: str, password: str) -> User | None:
    """
    Return the active user matching email + password, or None.

    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.email == normalize_email(email),
        User.is_active.is_(True),
    ).first()
    if not user:
        return None

    if not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    commit_or_raise()
    return user


def change_password(
    *,
    current_password: str,
    new_password: str,
    actor: Actor,
    keep_session_id: int | None = None,
) -> User:
    """
    Let a signed-in user replace their own password.

    Every other live session of the user is revoked; `keep_session_id`
    (the caller's session) stays valid.

    Raises:
        AuthenticationRequired: no caller, or caller deactivated
        InvalidCurrentPassword: current password does not match
        PasswordValidationError: new password too weak
        ValidationError: new password equals the current one
    """
    if actor is None:
        raise AuthenticationRequired()
    user = db.session.get(User, actor.user_id)
    if user is None or not user.is_active:
        raise AuthenticationRequired()

    if not verify_password(current_password or "", user.password_hash):
        raise InvalidCurrentPassword("Current password is incorrect")
    if new_password == current_password:
        raise ValidationError("New password must differ from the current password")

    user.password_hash = hash_password(new_password)
    revoked = session_service.revoke_all_user_sessions(
        user.id, reason="Password changed", commit=False, keep_session_id=keep_session_id
    )
    commit_or_raise()
    logger.info("User id=%s changed password; %s other session(s) revoked", user.id, revoked)
    return user


def _create_user(*, email: str, name: str | None, password: str, role: str) -> User:
    email = normalize_email(email)
    if not _EMAIL.match(email):
        raise ValidationError("A valid email is required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    existing = db.session.query(User.id).filter(func.lower(User.email) == email).first()
    if existing:
        raise DuplicateUser()

    user = User(
        email=email,
        name=clean_text(name),
        role=role,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.session.add(user)
    flush_or_raise(
        on_unique=lambda exc: DuplicateUser() if is_unique_violation(exc, "uq_users_email", "users.email") else None
    )
    commit_or_raise()
    logger.info("Created user id=%s role=%s", user.id, user.role)
    return user


def create_user(*, email: str, name: str | None, password: str, role: str = ROLE_STAFF, actor: Actor) -> User:
    """
    Provision a new account (admin only).

    Raises:
        ValidationError / PasswordValidationError: bad email, role or password
        DuplicateUser: email already registered
    """
    require_capability(actor, "MANAGE_USERS")
    return _create_user(email=email, name=name, password=password, role=role)


def bootstrap_user(*, email: str, name: str | None, password: str, role: str) -> User:
    """Create an account without an acting admin. CLI use only."""
    return _create_user(email=email, name=name, password=password, role=role)


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users(*, actor: Actor, include_inactive: bool = False) -> list[User]:
    require_capability(actor, "MANAGE_USERS")
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.name, User.email).all()


def list_staff_directory(*, actor: Actor) -> list[User]:
    """Active colleagues an incoming staff member can pick as the outgoing user."""
    require_capability(actor, "HANDOVER")
    return (
        db.session.query(User)
        .filter(User.is_active.is_(True))
        .order_by(User.name, User.email)
        .all()
    )


def set_user_active(*, user_id: int, active: bool, actor: Actor) -> User:
    require_capability(actor, "MANAGE_USERS")
    user = get_user(user_id)
    if user.id == actor.user_id and not active:
        raise ValidationError("You cannot deactivate your own account")

    user.is_active = active
    if not active:
        session_service.revoke_all_user_sessions(user.id, reason="User deactivated", commit=False)
    commit_or_raise()
    logger.info("User id=%s active=%s by user id=%s", user.id, active, actor.user_id)
    return user


def set_user_role(*, user_id: int, role: str, actor: Actor) -> User:
    require_capability(actor, "MANAGE_USERS")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    user = get_user(user_id)
    if user.id == actor.user_id and role != user.role:
        raise ValidationError("You cannot change your own role")

    user.role = role
    commit_or_raise()
    logger.info("User id=%s role=%s by user id=%s", user.id, role, actor.user_id)
    return user
