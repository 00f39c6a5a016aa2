# Overview: Signed, time-limited bearer tokens carrying identity, role, and the rotation flag.

"""
Token Service

Tokens are HS256 JWTs signed with JWT_SECRET. The claim set is:
- sub: user id (string, as JWT requires)
- role: role at issue time
- mustChangePassword: rotation flag at issue time
- iat / exp: issue and expiry timestamps

CONSISTENCY CAVEAT: role and mustChangePassword are captured when the token is
issued and are NOT re-read from the database per request. An admin change to
either takes effect only once the user logs in again or the token expires.

Every verification failure (bad signature, malformed, expired, wrong claim shape)
raises the same TokenInvalidError with the same message.
"""

from dataclasses import dataclass
from datetime import timedelta

from flask import current_app
from jose import jwt
from jose.exceptions import JOSEError
from jose.utils import base64url_decode, base64url_encode

from ..roles import is_valid_role
from ..time_utils import parse_duration, utcnow


ALGORITHM = "HS256"
TOKEN_INVALID_MESSAGE = "Invalid or expired token."


class TokenInvalidError(Exception):
    """Token could not be trusted. Deliberately carries no detail about why."""

    def __init__(self):
        super().__init__(TOKEN_INVALID_MESSAGE)


@dataclass(frozen=True)
class TokenClaims:
    """Identity context carried inside a bearer token."""
    user_id: int
    role: str
    must_change_password: bool


def issue_token(claims: TokenClaims, *, secret: str, expires_in: timedelta) -> str:
    now = utcnow()
    payload = {
        "sub": str(claims.user_id),
        "role": claims.role,
        "mustChangePassword": bool(claims.must_change_password),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token: str, *, secret: str) -> TokenClaims:
    if not token or not isinstance(token, str):
        raise TokenInvalidError()

    # base64url leaves spare bits in the last character; only the canonical
    # spelling of a signature is accepted
    segments = token.split(".")
    if len(segments) != 3:
        raise TokenInvalidError()
    try:
        signature = base64url_decode(segments[2].encode("ascii"))
    except (ValueError, TypeError):
        raise TokenInvalidError() from None
    if base64url_encode(signature).decode("ascii") != segments[2]:
        raise TokenInvalidError()

    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except (JOSEError, ValueError, TypeError):
        raise TokenInvalidError() from None

    sub = payload.get("sub")
    role = payload.get("role")
    must_change = payload.get("mustChangePassword")

    if not isinstance(sub, str) or not sub.isdigit():
        raise TokenInvalidError()
    if not is_valid_role(role):
        raise TokenInvalidError()
    if not isinstance(must_change, bool):
        raise TokenInvalidError()

    return TokenClaims(user_id=int(sub), role=role, must_change_password=must_change)


def issue_for_user(user) -> str:
    """Issue a token from the user's CURRENT role and rotation flag using app config."""
    claims = TokenClaims(
        user_id=user.id,
        role=user.role,
        must_change_password=bool(user.must_change_password),
    )
    return issue_token(
        claims,
        secret=current_app.config["JWT_SECRET"],
        expires_in=parse_duration(current_app.config.get("JWT_EXPIRES_IN", "1h")),
    )


def verify_with_app_secret(token: str) -> TokenClaims:
    return verify_token(token, secret=current_app.config["JWT_SECRET"])
