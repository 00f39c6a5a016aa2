# Overview: Password policy: strength rules, bcrypt hashing, temporary password generation.

"""
Password Policy

SECURITY NOTES:
- Passwords hashed with bcrypt; cost factor from BCRYPT_ROUNDS (default 12)
- Minimum 8 characters, at most 72 bytes (bcrypt ignores anything beyond)
- Must contain uppercase, lowercase, digit, and special char
- Temporary passwords come from the `secrets` CSPRNG, never `random`
"""

import re
import secrets

import bcrypt
from flask import current_app, has_app_context

from ..validation import ValidationError


DEFAULT_BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72

SPECIAL_CHARACTERS = "!@#$%^&*(),.?\":{}|<>"
TEMPORARY_PASSWORD_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    "!@#$%^&*()_+"
)

_SPECIAL_RE = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> str | None:
    """
    Check password strength. Returns the first violation message, or None when the
    password is acceptable.

    Requirements:
    - Minimum 8 characters, at most 72 bytes of UTF-8
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.?":{}|<>)
    """
    if not isinstance(password, str):
        return "Password must be a string."

    if len(password) < MIN_PASSWORD_LENGTH:
        return "Password must be at least 8 characters long."

    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return "Password must be at most 72 bytes long."

    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter."

    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter."

    if not re.search(r"[0-9]", password):
        return "Password must contain at least one digit."

    if not _SPECIAL_RE.search(password):
        return "Password must contain at least one special character."

    return None


def require_strong_password(password: str) -> None:
    """Raise PasswordValidationError carrying the specific violation."""
    violation = validate_password_strength(password)
    if violation:
        raise PasswordValidationError(violation)


def _configured_rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS))
    return DEFAULT_BCRYPT_ROUNDS


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash password using bcrypt.

    Strength is NOT checked here; callers validate first (seed bootstrap, change-password).
    Temporary passwords are generated to pass the policy already.
    """
    salt = bcrypt.gensalt(rounds=rounds or _configured_rounds())
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() does the comparison in constant time.
    A malformed or empty hash verifies as False.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def generate_temporary_password(length: int = 12) -> str:
    """
    Draw random characters until the result passes validate_password_strength.

    Rejection sampling: each draw is independent, so the loop ends with probability 1,
    but callers must not assume a fixed number of attempts.
    """
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(f"temporary password length must be at least {MIN_PASSWORD_LENGTH}")
    if length > MAX_PASSWORD_BYTES:
        raise ValueError(f"temporary password length must be at most {MAX_PASSWORD_BYTES}")

    while True:
        candidate = "".join(secrets.choice(TEMPORARY_PASSWORD_ALPHABET) for _ in range(length))
        if validate_password_strength(candidate) is None:
            return candidate
