"""
Pytest fixtures for stockbook backend tests.

Provides test database setup, two tenants with stock, and auth helpers.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from stockbook import create_app
from stockbook.extensions import db
from stockbook.models import Item, User, normalize_item_name
from stockbook.services.auth_service import hash_password
from stockbook.services.session_service import create_session

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'BUSINESS_TIMEZONE': 'Asia/Kolkata',
    'INVOICE_PREFIX': 'INV',
    'DEFAULT_TAX_RATE': 18.0,
    'BCRYPT_ROUNDS': 4,
    'LOG_LEVEL': 'WARNING',
}

# 12:00 in Asia/Kolkata on 2026-10-18
NOON_IST = datetime(2026, 10, 18, 6, 30, tzinfo=timezone.utc)


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


def make_user(session, name: str, email: str) -> User:
    user = User(name=name, email=email, password_hash=hash_password("Password123"))
    session.add(user)
    session.commit()
    return user


def make_item(session, user: User, name: str, quantity, selling_rate="100") -> Item:
    item = Item(
        user_id=user.id,
        name=name,
        name_key=normalize_item_name(name),
        quantity=Decimal(str(quantity)),
        buying_rate=Decimal("50"),
        selling_rate=Decimal(str(selling_rate)),
    )
    session.add(item)
    session.commit()
    return item


@pytest.fixture(scope='function')
def user_a(db_session):
    """First tenant."""
    return make_user(db_session, "Asha", "asha@example.com")


@pytest.fixture(scope='function')
def user_b(db_session):
    """Second tenant."""
    return make_user(db_session, "Bilal", "bilal@example.com")


@pytest.fixture(scope='function')
def widget(db_session, user_a):
    """User A's "Widget": 10 on hand at 100 each."""
    return make_item(db_session, user_a, "Widget", 10, selling_rate="100")


def item_quantity(session, item_id: int) -> Decimal:
    session.expire_all()
    return Decimal(session.get(Item, item_id).quantity)


def get_auth_token(user: User) -> str:
    """Helper to get auth token for a user."""
    _, token = create_session(user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
