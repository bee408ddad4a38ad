"""
Pytest fixtures for the fuel station backend tests.

Provides test database setup, user/actor fixtures, and test client.
"""

import pytest
from fuelstation import create_app
from fuelstation.extensions import db
from fuelstation.models import ChecklistItem, CleaningOperation
from fuelstation.permissions import ROLE_ADMIN, ROLE_STAFF
from fuelstation.services.auth_service import actor_for, bootstrap_user


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

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


@pytest.fixture(scope='function')
def admin_user(db_session):
    return bootstrap_user(email="admin@station.local", name="Ayse Admin", password=PASSWORD, role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def staff_user(db_session):
    return bootstrap_user(email="mehmet@station.local", name="Mehmet Staff", password=PASSWORD, role=ROLE_STAFF)


@pytest.fixture(scope='function')
def other_staff_user(db_session):
    return bootstrap_user(email="zeynep@station.local", name="Zeynep Staff", password=PASSWORD, role=ROLE_STAFF)


@pytest.fixture(scope='function')
def admin(admin_user):
    return actor_for(admin_user)


@pytest.fixture(scope='function')
def staff(staff_user):
    return actor_for(staff_user)


@pytest.fixture(scope='function')
def other_staff(other_staff_user):
    return actor_for(other_staff_user)


@pytest.fixture(scope='function')
def checklist_items(db_session):
    items = [
        ChecklistItem(title="Cash drawer counted", sort_order=1, active=True),
        ChecklistItem(title="Pumps checked", sort_order=2, active=True),
        ChecklistItem(title="Old question", sort_order=3, active=False),
    ]
    db_session.add_all(items)
    db_session.commit()
    return items


@pytest.fixture(scope='function')
def cleaning_operations(db_session):
    operations = [
        CleaningOperation(name="Restrooms", sort_order=1, active=True),
        CleaningOperation(name="Forecourt", sort_order=2, active=True),
        CleaningOperation(name="Car wash bay", sort_order=3, active=False),
    ]
    db_session.add_all(operations)
    db_session.commit()
    return operations


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
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
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, staff_user.email))


@pytest.fixture(scope='function')
def other_staff_headers(client, other_staff_user):
    return auth_headers(get_auth_token(client, other_staff_user.email))
