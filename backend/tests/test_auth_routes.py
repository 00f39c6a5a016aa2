"""
Authentication route tests.

Verifies:
- Login issues a token and updates last login
- Unknown email, inactive account and wrong password are indistinguishable
- Change-password enforces current password, strength, and the self-service lock
- Completing rotation unlocks protected resources after a fresh login
"""

import pytest

from ipms.models import User
from conftest import DEFAULT_PASSWORD, auth_headers, get_auth_token, make_user
from ipms.roles import ROLE_ADMIN, ROLE_STOREKEEPER


NEW_PASSWORD = "N3w-Secret!pass"


class TestLogin:

    def test_login_success(self, client, db_session, storekeeper_user):
        resp = client.post("/api/auth/login", json={"email": storekeeper_user.email, "password": DEFAULT_PASSWORD})
        assert resp.status_code == 200
        body = resp.json
        assert body["success"] is True
        assert body["token"]
        assert body["user"]["email"] == storekeeper_user.email
        assert body["user"]["role"] == ROLE_STOREKEEPER
        assert "passwordHash" not in body["user"]
        assert "password_hash" not in body["user"]

        db_session.expire_all()
        assert db_session.get(User, storekeeper_user.id).last_login_at is not None

    def test_login_trims_email(self, client, storekeeper_user):
        resp = client.post("/api/auth/login", json={"email": f"  {storekeeper_user.email} ", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 200

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"email": "store@example.com"},
            {"password": DEFAULT_PASSWORD},
            {"email": "", "password": ""},
        ],
    )
    def test_missing_fields(self, client, db_session, payload):
        resp = client.post("/api/auth/login", json=payload)
        assert resp.status_code == 400
        assert resp.json["success"] is False

    @pytest.mark.parametrize("body", [["store@example.com", DEFAULT_PASSWORD], "text", 7])
    def test_non_object_body(self, client, db_session, storekeeper_user, body):
        resp = client.post("/api/auth/login", json=body)
        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid JSON payload"
        assert resp.json["code"] == "InvalidInput"

    def test_malformed_email(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "not-an-email", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid email format."

    def test_failures_are_indistinguishable(self, client, db_session, storekeeper_user):
        make_user(db_session, "gone@example.com", ROLE_STOREKEEPER, is_active=False)

        unknown = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": DEFAULT_PASSWORD})
        inactive = client.post("/api/auth/login", json={"email": "gone@example.com", "password": DEFAULT_PASSWORD})
        wrong = client.post("/api/auth/login", json={"email": storekeeper_user.email, "password": "Wrong-pass1!"})

        for resp in (unknown, inactive, wrong):
            assert resp.status_code == 401
            assert resp.json == {"success": False, "error": "Invalid credentials.", "code": "InvalidCredentials"}

    def test_login_then_me(self, client, storekeeper_user):
        token = get_auth_token(client, storekeeper_user.email)
        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.json["user"]["id"] == storekeeper_user.id
        assert resp.json["user"]["fullName"] == "Store Keeper"

    def test_me_for_deleted_subject(self, client, db_session, storekeeper_user):
        token = get_auth_token(client, storekeeper_user.email)
        db_session.query(User).filter(User.id == storekeeper_user.id).delete()
        db_session.commit()

        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 404


class TestChangePassword:

    def test_rotation_flow(self, client, db_session, rotation_user, rotation_headers):
        assert client.get("/api/items", headers=rotation_headers).status_code == 403

        resp = client.post(
            "/api/auth/change-password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": NEW_PASSWORD},
            headers=rotation_headers,
        )
        assert resp.status_code == 200
        assert resp.json["success"] is True

        db_session.expire_all()
        assert db_session.get(User, rotation_user.id).must_change_password is False

        # Old token still carries the flag
        assert client.get("/api/items", headers=rotation_headers).status_code == 403

        # Old password no longer works, new one does and unlocks the inventory
        assert get_auth_token(client, rotation_user.email, DEFAULT_PASSWORD) is None
        fresh = auth_headers(get_auth_token(client, rotation_user.email, NEW_PASSWORD))
        assert client.get("/api/items", headers=fresh).status_code == 200

    def test_wrong_current_password(self, client, storekeeper_headers):
        resp = client.post(
            "/api/auth/change-password",
            json={"currentPassword": "Not-it-123!", "newPassword": NEW_PASSWORD},
            headers=storekeeper_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "Current password is incorrect."

    @pytest.mark.parametrize(
        "new_password,fragment",
        [
            ("short1!", "at least 8 characters"),
            ("alllowercase1!", "uppercase"),
            ("NoDigitsHere!", "digit"),
            ("NoSpecial123", "special character"),
        ],
    )
    def test_weak_new_password(self, client, storekeeper_headers, new_password, fragment):
        resp = client.post(
            "/api/auth/change-password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": new_password},
            headers=storekeeper_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "WeakPassword"
        assert fragment in resp.json["error"]

    def test_missing_fields(self, client, storekeeper_headers):
        resp = client.post("/api/auth/change-password", json={"newPassword": NEW_PASSWORD}, headers=storekeeper_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("body", [["x"], "x", None])
    def test_non_object_body(self, client, storekeeper_headers, body):
        resp = client.post("/api/auth/change-password", json=body, headers=storekeeper_headers)
        assert resp.status_code == 400
        assert resp.json["success"] is False

    def test_locked_account_cannot_change(self, client, db_session):
        make_user(db_session, "root@example.com", ROLE_ADMIN, can_change_password=False)
        headers = auth_headers(get_auth_token(client, "root@example.com"))

        resp = client.post(
            "/api/auth/change-password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": NEW_PASSWORD},
            headers=headers,
        )
        assert resp.status_code == 403
        assert resp.json["code"] == "Forbidden"
