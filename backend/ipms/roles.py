# Overview: Role definitions and the role sets each area of the API admits.

ROLE_ADMIN = "ADMIN"
ROLE_FINANCE = "FINANCE"
ROLE_PROCUREMENT = "PROCUREMENT"
ROLE_STOREKEEPER = "STOREKEEPER"
ROLE_DEPARTMENT_MANAGER = "DEPARTMENT_MANAGER"
ROLE_STAFF = "STAFF"

ALL_ROLES = (
    ROLE_ADMIN,
    ROLE_FINANCE,
    ROLE_PROCUREMENT,
    ROLE_STOREKEEPER,
    ROLE_DEPARTMENT_MANAGER,
    ROLE_STAFF,
)

# -- ACCESS GROUPS --

USER_ADMIN_ROLES = frozenset({ROLE_ADMIN})

# Catalog and stock ledger
INVENTORY_ROLES = frozenset({ROLE_ADMIN, ROLE_STOREKEEPER, ROLE_PROCUREMENT})


def is_valid_role(role) -> bool:
    return isinstance(role, str) and role in ALL_ROLES
