"""
Pytest fixtures for the inventory backend tests.

Provides the test app on in-memory SQLite, a per-test table wipe, user and catalog
fixtures, and bearer-token helpers.
"""

import pytest
from ipms import create_app
from ipms.extensions import db
from ipms.models import User, ItemCategory, Item, Warehouse
from ipms.roles import ROLE_ADMIN, ROLE_STOREKEEPER, ROLE_PROCUREMENT, ROLE_STAFF
from ipms.services.password_service import hash_password


DEFAULT_PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'JWT_SECRET': 'test-jwt-secret',
    'JWT_EXPIRES_IN': '1h',
    'BCRYPT_ROUNDS': 4,
    'MAIL_USERNAME': '',
    'MAIL_PASSWORD': '',
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(
    session,
    email: str,
    role: str,
    *,
    password: str = DEFAULT_PASSWORD,
    full_name: str = "Test User",
    is_active: bool = True,
    must_change_password: bool = False,
    can_change_password: bool = True,
) -> User:
    user = User(
        email=email,
        full_name=full_name,
        role=role,
        password_hash=hash_password(password),
        is_active=is_active,
        must_change_password=must_change_password,
        can_change_password=can_change_password,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user(db_session, "admin@example.com", ROLE_ADMIN, full_name="Admin")


@pytest.fixture(scope='function')
def storekeeper_user(db_session):
    return make_user(db_session, "store@example.com", ROLE_STOREKEEPER, full_name="Store Keeper")


@pytest.fixture(scope='function')
def procurement_user(db_session):
    return make_user(db_session, "buyer@example.com", ROLE_PROCUREMENT, full_name="Buyer")


@pytest.fixture(scope='function')
def staff_user(db_session):
    return make_user(db_session, "staff@example.com", ROLE_STAFF, full_name="Staff Member")


@pytest.fixture(scope='function')
def rotation_user(db_session):
    """Storekeeper still holding a temporary password."""
    return make_user(
        db_session,
        "newhire@example.com",
        ROLE_STOREKEEPER,
        full_name="New Hire",
        must_change_password=True,
    )


@pytest.fixture(scope='function')
def category(db_session):
    cat = ItemCategory(name="Stationery", description="Office supplies", is_active=True)
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def item(db_session, category):
    it = Item(name="A4 Paper", sku="PAP-A4", unit="ream", category_id=category.id, is_active=True)
    db_session.add(it)
    db_session.commit()
    return it


@pytest.fixture(scope='function')
def warehouse(db_session):
    wh = Warehouse(name="Main Store", code="MAIN", location="Block A", is_active=True)
    db_session.add(wh)
    db_session.commit()
    return wh


def get_auth_token(client, email: str, password: str = DEFAULT_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def storekeeper_headers(client, storekeeper_user):
    return auth_headers(get_auth_token(client, storekeeper_user.email))


@pytest.fixture(scope='function')
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, staff_user.email))


@pytest.fixture(scope='function')
def rotation_headers(client, rotation_user):
    return auth_headers(get_auth_token(client, rotation_user.email))
