# Overview: Request guards and the decorators that chain them for API routes.

"""
Authorization Gate

Guards run in a fixed order; the first failure ends the request:

1. authenticate              -> 401 (missing/malformed header, invalid/expired token)
2. require_session           -> 401 (no identity on g)
3. require_rotated_password  -> 403 (token says the password must be changed first)
4. require_role(roles)       -> 403 (role not allowed for this operation)

Each guard returns None to let the request through or a GateFailure describing the
rejection. Guards are plain functions composed by `guarded`; nothing is inherited.

The identity (TokenClaims) is stored on g.identity. Role and the rotation flag come
from the token, not the database.
"""

from dataclasses import dataclass
from functools import wraps
from typing import Callable, Iterable, Optional

from flask import g, jsonify, request

from .services import token_service
from .services.token_service import TokenInvalidError


ERROR_UNAUTHENTICATED = "Unauthenticated"
ERROR_ROTATION_REQUIRED = "PasswordRotationRequired"
ERROR_FORBIDDEN = "Forbidden"

UNAUTHENTICATED_MESSAGE = "Invalid or missing authentication token."


@dataclass(frozen=True)
class GateFailure:
    status: int
    kind: str
    error: str

    def to_response(self):
        return jsonify({"success": False, "error": self.error, "code": self.kind}), self.status


Guard = Callable[[], Optional[GateFailure]]


def _unauthenticated() -> GateFailure:
    return GateFailure(401, ERROR_UNAUTHENTICATED, UNAUTHENTICATED_MESSAGE)


def authenticate() -> GateFailure | None:
    """Extract the bearer token and verify it. All failure causes look identical."""
    g.identity = None
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        return _unauthenticated()

    token = auth_header[len("Bearer "):].strip()
    if not token:
        return _unauthenticated()

    try:
        g.identity = token_service.verify_with_app_secret(token)
    except TokenInvalidError:
        return _unauthenticated()

    return None


def require_session() -> GateFailure | None:
    """Refuse when no earlier guard established an identity."""
    if getattr(g, "identity", None) is None:
        return GateFailure(401, ERROR_UNAUTHENTICATED, "Authentication required.")
    return None


def require_rotated_password() -> GateFailure | None:
    identity = getattr(g, "identity", None)
    if identity is None:
        return GateFailure(401, ERROR_UNAUTHENTICATED, "Authentication required.")
    if identity.must_change_password:
        return GateFailure(
            403,
            ERROR_ROTATION_REQUIRED,
            "You must change your password before accessing this resource.",
        )
    return None


def require_role(roles: Iterable[str]) -> Guard:
    allowed = frozenset(roles)

    def guard() -> GateFailure | None:
        identity = getattr(g, "identity", None)
        if identity is None:
            return GateFailure(401, ERROR_UNAUTHENTICATED, "Authentication required.")
        if identity.role not in allowed:
            return GateFailure(
                403,
                ERROR_FORBIDDEN,
                "You do not have permission to perform this action.",
            )
        return None

    guard.__name__ = f"require_role({','.join(sorted(allowed))})"
    return guard


def run_guards(guards: Iterable[Guard]) -> GateFailure | None:
    for guard in guards:
        failure = guard()
        if failure is not None:
            return failure
    return None


def guarded(*guards: Guard):
    """Run the given guards in order before the view; stop at the first failure."""
    chain = tuple(guards)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            failure = run_guards(chain)
            if failure is not None:
                return failure.to_response()
            return f(*args, **kwargs)

        decorated_function.guards = chain
        return decorated_function
    return decorator


def require_auth(f):
    """
    Authenticated identity only. Used by the endpoints a user with a pending
    password rotation must still reach (/me, change-password).
    """
    return guarded(authenticate, require_session)(f)


def protected(*roles: str):
    """Full chain: authenticated, password rotated, role allowed."""
    return guarded(authenticate, require_session, require_rotated_password, require_role(roles))
