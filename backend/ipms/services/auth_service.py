# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Login issues a bearer token that embeds the user's CURRENT role and
must_change_password flag.

SECURITY NOTES:
- Unknown email, inactive account, and wrong password all raise the same
  InvalidCredentialsError with the same message (no enumeration, no active-status leak)
- For unknown emails a dummy bcrypt check still runs so timing stays comparable
- Password change does not revoke tokens already issued (see token_service caveat)
"""

from functools import lru_cache

from flask import current_app
from sqlalchemy.orm import Session

from ..models import User
from ..validation import ValidationError, NotFoundError, is_valid_email
from . import password_service, token_service
from .password_service import require_strong_password
from ..time_utils import utcnow


INVALID_CREDENTIALS_MESSAGE = "Invalid credentials."


class InvalidCredentialsError(Exception):
    """Login failed. Never says which part was wrong."""

    def __init__(self):
        super().__init__(INVALID_CREDENTIALS_MESSAGE)


class PasswordChangeForbiddenError(Exception):
    """Account is locked out of self-service password rotation."""


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return password_service.hash_password("Dummy-Password-1!", rounds=rounds)


def _burn_verification(password: str) -> None:
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", password_service.DEFAULT_BCRYPT_ROUNDS))
    password_service.verify_password(password, _dummy_hash(rounds))


def find_user_by_email(session: Session, email: str) -> User | None:
    return session.query(User).filter(User.email == email.strip()).first()


def login(session: Session, *, email: str, password: str) -> tuple[str, User]:
    """
    Authenticate by email + password and issue a bearer token.

    Returns (token, user). Updates last_login_at on success.

    Raises:
        ValidationError: email/password missing or email malformed
        InvalidCredentialsError: unknown, inactive, or wrong password
    """
    if not email or not password:
        raise ValidationError("Email and password are required.")
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationError("Email and password must be strings.")
    if not is_valid_email(email):
        raise ValidationError("Invalid email format.")

    user = find_user_by_email(session, email)

    if user is None:
        _burn_verification(password)
        raise InvalidCredentialsError()

    password_ok = password_service.verify_password(password, user.password_hash)
    if not user.is_active or not password_ok:
        raise InvalidCredentialsError()

    user.last_login_at = utcnow()
    session.commit()

    token = token_service.issue_for_user(user)
    return token, user


def get_current_user(session: Session, user_id: int) -> User:
    """Load the token subject fresh from the store."""
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


def change_password(
    session: Session,
    *,
    user_id: int,
    current_password: str,
    new_password: str,
) -> User:
    """
    Rotate the caller's password and clear must_change_password.

    Raises:
        ValidationError: fields missing, or current password incorrect
        NotFoundError: token subject no longer exists
        PasswordChangeForbiddenError: can_change_password is False
        PasswordValidationError: new password too weak (specific violation)
    """
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required.")
    if not isinstance(current_password, str) or not isinstance(new_password, str):
        raise ValidationError("Passwords must be strings.")

    user = get_current_user(session, user_id)

    if not user.can_change_password:
        raise PasswordChangeForbiddenError("This account is not allowed to change password.")

    if not password_service.verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect.")

    require_strong_password(new_password)

    user.password_hash = password_service.hash_password(new_password)
    user.must_change_password = False
    session.commit()
    return user
