# Overview: Flask API routes for user administration; parses input and returns JSON responses.

# backend/ipms/routes/users.py
"""
User administration routes. ADMIN only, password rotation completed.

Creating a user generates a temporary password, mails it (best effort), and also
returns it once in the 201 response.
"""

from flask import Blueprint, request, current_app

from ..extensions import db
from ..models import User
from ..roles import USER_ADMIN_ROLES
from ..services import user_service, notification_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import protected
from ..responses import ok, fail, internal_error


users_bp = Blueprint("users", __name__, url_prefix="/api/users")

USER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"email", "full_name", "role", "department"},
    required_on_create={"email", "full_name", "role"},
    aliases={"fullName": "full_name"},
)

USER_PATCH_POLICY = ModelValidationPolicy(
    writable_fields={"role", "department", "is_active"},
    aliases={"isActive": "is_active"},
)


@users_bp.post("")
@protected(*USER_ADMIN_ROLES)
def create_user_route():
    """
    Create a user.

    Request body:
    - email: str (required)
    - fullName: str (required)
    - role: ADMIN | FINANCE | PROCUREMENT | STOREKEEPER | DEPARTMENT_MANAGER | STAFF (required)
    - department: str (optional)
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=User, payload=payload, policy=USER_CREATE_POLICY, partial=False)
        created = user_service.create_user(
            db.session,
            email=patch["email"],
            full_name=patch["full_name"],
            role=patch["role"],
            department=patch.get("department"),
        )
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except ConflictError as e:
        return fail(str(e), 409, "Conflict")
    except Exception:
        current_app.logger.exception("Failed to create user")
        return internal_error()

    user = created.user
    current_app.logger.info("Created user %s (%s) with role %s", user.id, user.email, user.role)

    email_sent = notification_service.notify_user_created(user, created.temporary_password)

    return ok(
        201,
        user=user.to_dict(),
        temporaryPassword=created.temporary_password,
        emailSent=email_sent,
    )


@users_bp.get("")
@protected(*USER_ADMIN_ROLES)
def list_users_route():
    try:
        users = user_service.list_users(db.session)
    except Exception:
        current_app.logger.exception("Failed to list users")
        return internal_error()

    return ok(users=[u.to_dict() for u in users], count=len(users))


@users_bp.get("/<int(max=9223372036854775807):user_id>")
@protected(*USER_ADMIN_ROLES)
def get_user_route(user_id: int):
    try:
        user = user_service.get_user(db.session, user_id)
    except NotFoundError as e:
        return fail(str(e), 404, "NotFound")
    except Exception:
        current_app.logger.exception("Failed to load user")
        return internal_error()

    return ok(user=user.to_dict())


@users_bp.patch("/<int(max=9223372036854775807):user_id>")
@protected(*USER_ADMIN_ROLES)
def update_user_route(user_id: int):
    """
    Update role, department, or active status.

    Request body (all optional): role, department, isActive
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=User, payload=payload, policy=USER_PATCH_POLICY, partial=True)
        user = user_service.update_user(db.session, user_id, patch)
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except NotFoundError as e:
        return fail(str(e), 404, "NotFound")
    except Exception:
        current_app.logger.exception("Failed to update user")
        return internal_error()

    return ok(user=user.to_dict())
