# Overview: Service-layer operations for auth and staff accounts; encapsulates business logic and database work.

"""
Authentication Service

Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- Deactivated users cannot authenticate; their sessions are revoked
"""

import bcrypt
import re

from flask import current_app

from ..errors import ConflictError, NotFound, Unauthenticated, ValidationError
from ..extensions import db
from ..models import ROLES, User
from ..permissions import PERMISSION_NAMES, default_permissions_for_role
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload
from .session_service import create_session, revoke_all_user_sessions


# Roles the business owner may assign through the API
ASSIGNABLE_ROLES = ("sales_manager", "salesperson")

USER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "email", "role"},
    required_on_create={"first_name", "last_name", "email", "role"},
)
USER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "email", "role"},
)
SELF_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "email"},
)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


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
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
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
    """
    Hash password using bcrypt at the configured cost factor (BCRYPT_ROUNDS).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes never match.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email) -> str:
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("email is required")
    email = email.strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError("Please enter a valid email")
    return email


def _ensure_email_free(email: str, *, exclude_user_id: int | None = None) -> None:
    query = db.session.query(User).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    if query.first():
        raise ConflictError("User already exists with this email")


def create_user(
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    role: str = "salesperson",
) -> User:
    """
    Create new user with bcrypt password hashing and the role's default permissions.

    Raises ValidationError for bad input or weak password, ConflictError for a taken email.
    """
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    email = _normalize_email(email)
    _ensure_email_free(email)

    user = User(
        first_name=(first_name or "").strip(),
        last_name=(last_name or "").strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
        **default_permissions_for_role(role),
    )
    if not user.first_name or not user.last_name:
        raise ValidationError("first_name and last_name are required")

    db.session.add(user)
    db.session.commit()
    current_app.logger.info("User %s created with role %s", user.email, user.role)
    return user


def create_staff_user(payload: dict) -> User:
    """Business-owner endpoint: create a sales manager or salesperson."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    password = payload.pop("password", None)
    if password is None:
        raise ValidationError("Missing required fields: password")
    patch = validate_payload(model=User, payload=payload, policy=USER_CREATE_POLICY, partial=False)
    if patch["role"] not in ASSIGNABLE_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ASSIGNABLE_ROLES)}")
    return create_user(patch["first_name"], patch["last_name"], patch["email"], password, patch["role"])


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not email or not password:
        return None

    user = db.session.query(User).filter(
        User.email == str(email).strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def login(email: str, password: str, *, user_agent: str | None = None, ip_address: str | None = None):
    """Returns (user, session, plaintext_token); raises Unauthenticated on bad credentials."""
    user = authenticate(email, password)
    if not user:
        current_app.logger.warning("Failed login for %s from %s", email, ip_address)
        raise Unauthenticated("Invalid email or password")
    session, token = create_session(user.id, user_agent=user_agent, ip_address=ip_address)
    current_app.logger.info("User %s logged in", user.email)
    return user, session, token


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def _apply_user_patch(user: User, patch: dict) -> None:
    if "email" in patch:
        patch["email"] = _normalize_email(patch["email"])
        _ensure_email_free(patch["email"], exclude_user_id=user.id)
    for key, value in patch.items():
        setattr(user, key, value)


def update_user(user_id: int, payload: dict) -> User:
    """Owner edit of another account. Passwords are not editable here."""
    if isinstance(payload, dict) and "password" in payload:
        raise ValidationError("Password cannot be changed through this endpoint")
    user = get_user(user_id)
    patch = validate_payload(model=User, payload=payload, policy=USER_UPDATE_POLICY, partial=True)
    if "role" in patch and patch["role"] != user.role:
        if user.role == "business_owner" or patch["role"] not in ASSIGNABLE_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ASSIGNABLE_ROLES)}")
    _apply_user_patch(user, patch)
    db.session.commit()
    return user


def update_own_details(user: User, payload: dict) -> User:
    patch = validate_payload(model=User, payload=payload, policy=SELF_UPDATE_POLICY, partial=True)
    _apply_user_patch(user, patch)
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    """Verify the current password and store the new one."""
    if not current_password or not new_password:
        raise ValidationError("current_password and new_password are required")
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()
    current_app.logger.info("Password changed for user %s", user.email)


def update_permissions(user_id: int, permissions: dict) -> User:
    """Toggle named permissions. Unknown names and non-boolean values are rejected."""
    if not isinstance(permissions, dict) or not permissions:
        raise ValidationError("permissions object is required")
    for name, value in permissions.items():
        if name not in PERMISSION_NAMES:
            raise ValidationError(f"Unknown permission: {name}")
        if not isinstance(value, bool):
            raise ValidationError(f"Permission {name} must be a boolean")

    user = get_user(user_id)
    for name, value in permissions.items():
        setattr(user, name, value)
    db.session.commit()
    current_app.logger.info("Permissions updated for user %s: %s", user.email, permissions)
    return user


def set_permission(user_id: int, name: str, value: bool) -> User:
    return update_permissions(user_id, {name: value})


def deactivate_user(user_id: int, *, actor: User) -> User:
    user = get_user(user_id)
    if user.id == actor.id:
        raise ValidationError("You cannot deactivate your own account")
    user.is_active = False
    revoke_all_user_sessions(user.id, "User account deactivated", commit=False)
    db.session.commit()
    current_app.logger.info("User %s deactivated by %s", user.email, actor.email)
    return user


def activate_user(user_id: int) -> User:
    user = get_user(user_id)
    user.is_active = True
    db.session.commit()
    return user
