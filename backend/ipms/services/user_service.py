# Overview: Service-layer operations for user administration; encapsulates business logic and database work.

"""
User Administration

- Admin-created users get a generated temporary password, must_change_password=True.
- The bootstrap admin (CLI seed) gets an operator-chosen password and is locked out
  of self-service rotation (can_change_password=False).
- Users are never deleted; deactivate via update_user(is_active=False).
"""

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import User
from ..roles import ROLE_ADMIN, ALL_ROLES, is_valid_role
from ..validation import ValidationError, ConflictError, NotFoundError, is_valid_email
from . import password_service


TEMPORARY_PASSWORD_LENGTH = 14

USER_MUTABLE_FIELDS = {"role", "department", "is_active"}


@dataclass
class CreatedUser:
    user: User
    temporary_password: str


def _require_role(role) -> str:
    if not is_valid_role(role):
        raise ValidationError(f"Invalid role. Allowed roles: {', '.join(ALL_ROLES)}.")
    return role


def _email_taken(session: Session, email: str, exclude_id: int | None = None) -> bool:
    query = session.query(User.id).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def create_user(
    session: Session,
    *,
    email: str,
    full_name: str,
    role: str,
    department: str | None = None,
) -> CreatedUser:
    """
    Create a user with a temporary password.

    Returns CreatedUser(user, temporary_password). The plaintext temporary password is
    returned exactly once so the caller can deliver it; only its hash is stored.

    Raises:
        ValidationError: missing fields, malformed email, unknown role
        ConflictError: email already registered
    """
    if not email or not full_name or not role:
        raise ValidationError("email, fullName and role are required.")
    email = email.strip()
    if not is_valid_email(email):
        raise ValidationError("Invalid email format.")
    _require_role(role)

    if _email_taken(session, email):
        raise ConflictError("A user with this email already exists.")

    temporary_password = password_service.generate_temporary_password(TEMPORARY_PASSWORD_LENGTH)

    user = User(
        email=email,
        full_name=full_name.strip(),
        role=role,
        department=department or None,
        password_hash=password_service.hash_password(temporary_password),
        is_active=True,
        must_change_password=True,
        can_change_password=True,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("A user with this email already exists.")

    return CreatedUser(user=user, temporary_password=temporary_password)


def list_users(session: Session) -> list[User]:
    return session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


def update_user(session: Session, user_id: int, patch: dict) -> User:
    """
    Admin patch of role / department / is_active. Other keys are ignored.

    Changes to role or is_active do not touch tokens already issued.
    """
    user = get_user(session, user_id)

    if "role" in patch:
        _require_role(patch["role"])

    for k, v in patch.items():
        if k not in USER_MUTABLE_FIELDS:
            continue
        setattr(user, k, v)

    session.commit()
    return user


def seed_admin(
    session: Session,
    *,
    email: str,
    password: str,
    full_name: str = "System Administrator",
) -> tuple[User, bool]:
    """
    Idempotently create the bootstrap admin.

    Returns (user, created). An existing user with the email is left untouched.

    Raises:
        ValidationError: malformed email
        PasswordValidationError: password too weak
    """
    if not email or not is_valid_email(email):
        raise ValidationError("ADMIN_EMAIL is not a valid email address.")
    email = email.strip()
    password_service.require_strong_password(password)

    existing = session.query(User).filter(User.email == email).first()
    if existing:
        return existing, False

    admin = User(
        email=email,
        full_name=full_name,
        password_hash=password_service.hash_password(password),
        role=ROLE_ADMIN,
        department="Management",
        is_active=True,
        must_change_password=False,
        can_change_password=False,
    )
    session.add(admin)
    session.commit()
    return admin, True
