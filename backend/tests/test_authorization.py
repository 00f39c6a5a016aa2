"""
Authorization gate tests.

Verifies:
- Protected endpoints return 401 without a valid token
- A pending password rotation blocks everything except /me and change-password
- Roles outside the allowed set get 403
- Guard order: 401 before rotation 403 before role 403
"""

from datetime import timedelta

import pytest

from ipms.decorators import (
    ERROR_FORBIDDEN,
    ERROR_ROTATION_REQUIRED,
    ERROR_UNAUTHENTICATED,
    authenticate,
    require_session,
    require_rotated_password,
)
from ipms.roles import ROLE_STAFF
from ipms.routes.items import create_item_route
from ipms.services.token_service import TokenClaims, issue_token
from conftest import auth_headers


PROTECTED_ENDPOINTS = [
    ("GET", "/api/users"),
    ("POST", "/api/users"),
    ("GET", "/api/users/1"),
    ("PATCH", "/api/users/1"),
    ("GET", "/api/items"),
    ("POST", "/api/items"),
    ("GET", "/api/items/categories"),
    ("POST", "/api/items/categories"),
    ("GET", "/api/warehouses"),
    ("POST", "/api/warehouses"),
    ("POST", "/api/warehouses/opening-stock"),
    ("GET", "/api/warehouses/stock"),
    ("GET", "/api/warehouses/movements"),
    ("GET", "/api/auth/me"),
    ("POST", "/api/auth/change-password"),
]


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize("method,path", PROTECTED_ENDPOINTS)
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path, json={})
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["success"] is False
        assert resp.json["code"] == ERROR_UNAUTHENTICATED

    @pytest.mark.parametrize(
        "header",
        ["", "Bearer", "Bearer ", "Token abc", "bearer abc", "Bearer not.a.token"],
    )
    def test_malformed_header_rejected_uniformly(self, client, db_session, header):
        resp = client.get("/api/items", headers={"Authorization": header})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or missing authentication token."

    def test_expired_token_rejected(self, app, client, staff_user):
        token = issue_token(
            TokenClaims(user_id=staff_user.id, role=ROLE_STAFF, must_change_password=False),
            secret=app.config["JWT_SECRET"],
            expires_in=timedelta(seconds=-5),
        )
        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or missing authentication token."

    def test_token_signed_with_other_secret_rejected(self, client, staff_user):
        token = issue_token(
            TokenClaims(user_id=staff_user.id, role=ROLE_STAFF, must_change_password=False),
            secret="not-the-app-secret",
            expires_in=timedelta(hours=1),
        )
        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"


# =============================================================================
# PASSWORD ROTATION (403)
# =============================================================================


class TestPasswordRotation:
    """A token carrying mustChangePassword only reaches /me and change-password."""

    def test_blocked_from_inventory(self, client, rotation_headers):
        resp = client.get("/api/items", headers=rotation_headers)
        assert resp.status_code == 403
        assert resp.json["code"] == ERROR_ROTATION_REQUIRED

    def test_can_read_me(self, client, rotation_headers, rotation_user):
        resp = client.get("/api/auth/me", headers=rotation_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["email"] == rotation_user.email
        assert resp.json["user"]["mustChangePassword"] is True

    def test_rotation_checked_before_role(self, app, client, db_session):
        from conftest import make_user

        user = make_user(db_session, "pending-staff@example.com", ROLE_STAFF, must_change_password=True)
        token = issue_token(
            TokenClaims(user_id=user.id, role=ROLE_STAFF, must_change_password=True),
            secret=app.config["JWT_SECRET"],
            expires_in=timedelta(hours=1),
        )
        # STAFF is not an inventory role, but the rotation failure wins
        resp = client.get("/api/warehouses", headers=auth_headers(token))
        assert resp.status_code == 403
        assert resp.json["code"] == ERROR_ROTATION_REQUIRED


# =============================================================================
# ROLE CHECKS (403)
# =============================================================================


class TestRoleChecks:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/items"),
            ("GET", "/api/items/categories"),
            ("GET", "/api/warehouses"),
            ("GET", "/api/warehouses/stock"),
            ("POST", "/api/warehouses/opening-stock"),
            ("GET", "/api/users"),
        ],
    )
    def test_staff_denied(self, client, staff_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=staff_headers)
        assert resp.status_code == 403
        assert resp.json["code"] == ERROR_FORBIDDEN

    def test_storekeeper_cannot_manage_users(self, client, storekeeper_headers):
        resp = client.get("/api/users", headers=storekeeper_headers)
        assert resp.status_code == 403
        assert resp.json["code"] == ERROR_FORBIDDEN

    def test_storekeeper_reaches_inventory(self, client, storekeeper_headers):
        assert client.get("/api/items", headers=storekeeper_headers).status_code == 200
        assert client.get("/api/warehouses", headers=storekeeper_headers).status_code == 200
        assert client.get("/api/warehouses/stock", headers=storekeeper_headers).status_code == 200

    def test_procurement_reaches_inventory(self, client, procurement_user):
        from conftest import get_auth_token

        headers = auth_headers(get_auth_token(client, procurement_user.email))
        assert client.get("/api/items/categories", headers=headers).status_code == 200

    def test_admin_reaches_everything(self, client, admin_headers):
        assert client.get("/api/users", headers=admin_headers).status_code == 200
        assert client.get("/api/items", headers=admin_headers).status_code == 200
        assert client.get("/api/warehouses/movements", headers=admin_headers).status_code == 200

    def test_role_comes_from_token_until_relogin(self, client, db_session, storekeeper_user, storekeeper_headers):
        storekeeper_user.role = ROLE_STAFF
        db_session.commit()

        # Old token still carries STOREKEEPER
        assert client.get("/api/items", headers=storekeeper_headers).status_code == 200

        from conftest import get_auth_token
        fresh = auth_headers(get_auth_token(client, storekeeper_user.email))
        assert client.get("/api/items", headers=fresh).status_code == 403


class TestGuardChain:

    def test_full_chain_order(self):
        names = [g.__name__ for g in create_item_route.guards]
        assert names[:3] == [authenticate.__name__, require_session.__name__, require_rotated_password.__name__]
        assert names[3].startswith("require_role(")
        assert "STOREKEEPER" in names[3]
