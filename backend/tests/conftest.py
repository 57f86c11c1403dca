"""
Pytest fixtures for RetailPOS backend tests.

Provides test database setup, users, a product factory and the test client.
"""

from decimal import Decimal

import pytest
from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import Product, User
from retailpos.services.auth_service import hash_password

PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SALES_TAX_PERCENT': '0',
        'STORE_TIMEZONE': 'UTC',
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


def _make_user(session, username: str, role: str) -> User:
    user = User(
        username=username,
        full_name=username.capitalize(),
        password_hash=hash_password(PASSWORD, rounds=4),
        role=role,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin", "admin")


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return _make_user(db_session, "cashier", "cashier")


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory for products inserted directly (opening quantity, no ledger entry).

    Usage: make_product("Milk", selling_price="2.50", quantity=10)
    """
    counter = {"n": 0}

    def _make(name="Widget", *, selling_price="10.00", cost_price="6.00", quantity=100, **extra):
        counter["n"] += 1
        product = Product(
            name=name,
            barcode=extra.pop("barcode", f"400000000{counter['n']:04d}"),
            selling_price=Decimal(str(selling_price)),
            cost_price=Decimal(str(cost_price)),
            quantity=quantity,
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
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
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, cashier_user.username))
