from __future__ import annotations

from ..extensions import db
from ..roles import ALL_ROLES, ROLE_STAFF
from ..time_utils import to_utc_z


def _role_check_sql() -> str:
    quoted = ", ".join(f"'{role}'" for role in ALL_ROLES)
    return f"role IN ({quoted})"


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Roles are a single column (no role tables): ADMIN, FINANCE, PROCUREMENT,
    STOREKEEPER, DEPARTMENT_MANAGER, STAFF.

    Password lifecycle:
    - must_change_password: set for admin-created users holding a temporary password;
      blocks every protected resource except change-password.
    - can_change_password: False locks self-service rotation (e.g. bootstrap admin).

    Users are never physically deleted; deactivate with is_active=False.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(_role_check_sql(), name="ck_users_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    full_name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default=ROLE_STAFF, index=True)
    department = db.Column(db.String(128), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    must_change_password = db.Column(db.Boolean, nullable=False, default=False)
    can_change_password = db.Column(db.Boolean, nullable=False, default=True)

    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        """Sanitized projection. Never includes password_hash."""
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "role": self.role,
            "department": self.department,
            "isActive": self.is_active,
            "mustChangePassword": self.must_change_password,
            "canChangePassword": self.can_change_password,
            "createdAt": to_utc_z(self.created_at),
            "lastLoginAt": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
