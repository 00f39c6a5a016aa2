# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/ipms/routes/auth.py
"""
Authentication API routes

- POST /api/auth/login            public; issues a bearer token
- GET  /api/auth/me               any authenticated token, even with a pending rotation
- POST /api/auth/change-password  any authenticated token, even with a pending rotation

Self-registration does not exist: users are created by an ADMIN via /api/users
or bootstrapped with `flask users seed-admin`.
"""

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..services import auth_service
from ..services.auth_service import InvalidCredentialsError, PasswordChangeForbiddenError
from ..services.password_service import PasswordValidationError
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth, ERROR_FORBIDDEN
from ..responses import ok, fail, internal_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue a bearer token.

    Request body: {"email": "...", "password": "..."}

    The token embeds the user's current role and mustChangePassword flag.
    Unknown email, inactive account, and wrong password all answer the same 401.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return fail("Invalid JSON payload", 400, "InvalidInput")
    email = data.get("email")
    password = data.get("password")

    try:
        token, user = auth_service.login(db.session, email=email, password=password)
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except InvalidCredentialsError as e:
        current_app.logger.warning("Failed login attempt from %s", request.remote_addr)
        return fail(str(e), 401, "InvalidCredentials")
    except Exception:
        current_app.logger.exception("Failed to login user")
        return internal_error()

    return ok(token=token, user=user.to_dict())


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user as stored now (not as captured in the token)."""
    try:
        user = auth_service.get_current_user(db.session, g.identity.user_id)
    except NotFoundError as e:
        return fail(str(e), 404, "NotFound")
    except Exception:
        current_app.logger.exception("Failed to load current user")
        return internal_error()

    return ok(user=user.to_dict())


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change the caller's password.

    Request body: {"currentPassword": "...", "newPassword": "..."}

    Clears mustChangePassword. Tokens issued earlier keep their old claims until they
    expire; log in again to get a token without the rotation flag.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return fail("Invalid JSON payload", 400, "InvalidInput")

    try:
        auth_service.change_password(
            db.session,
            user_id=g.identity.user_id,
            current_password=data.get("currentPassword"),
            new_password=data.get("newPassword"),
        )
    except PasswordValidationError as e:
        return fail(str(e), 400, "WeakPassword")
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except PasswordChangeForbiddenError as e:
        return fail(str(e), 403, ERROR_FORBIDDEN)
    except NotFoundError as e:
        return fail(str(e), 404, "NotFound")
    except Exception:
        current_app.logger.exception("Failed to change password")
        return internal_error()

    return ok(message="Password changed successfully.")
