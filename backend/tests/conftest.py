"""
Pytest fixtures for the POS backend tests.

Provides the in-memory application, a wiped database per test, the
default staff accounts and a sample product.
"""

from decimal import Decimal

import pytest

from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import Product, User
from retailpos.cli import seed_default_users
from retailpos.services import settings_service
from retailpos.services.auth_service import create_user
from retailpos.services.products_service import create_product


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET_KEY': 'test-jwt-secret',
        'BCRYPT_LOG_ROUNDS': 4,
        'RECEIPTS_DIR': str(tmp_path_factory.mktemp('receipts')),
        'EXPORTS_DIR': str(tmp_path_factory.mktemp('exports')),
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
def seed(db_session):
    """Default settings plus the admin / manager1 / cashier1 accounts."""
    settings_service.ensure_defaults()
    seed_default_users()
    return db_session


@pytest.fixture(scope='function')
def admin_user(seed):
    return db.session.query(User).filter_by(username="admin").one()


@pytest.fixture(scope='function')
def cashier_user(seed):
    return db.session.query(User).filter_by(username="cashier1").one()


@pytest.fixture(scope='function')
def inactive_user(seed):
    user = create_user(username="former", password="former123", role="cashier")
    user.is_active = False
    db.session.commit()
    return user


def _make_product(barcode, name, price, stock, category="Beverages", min_stock=20) -> Product:
    created = create_product(patch={
        "barcode": barcode,
        "name": name,
        "price": Decimal(price),
        "cost": Decimal("1.00"),
        "category": category,
        "stock_quantity": stock,
        "min_stock_level": min_stock,
    })
    return db.session.get(Product, created["id"])


@pytest.fixture(scope='function')
def product(seed):
    """Coca Cola 500ml at 1.99 with 100 on hand."""
    return _make_product("8901234567890", "Coca Cola 500ml", "1.99", 100)


@pytest.fixture(scope='function')
def second_product(seed):
    return _make_product("8901234567891", "Lays Chips Classic", "2.49", 80, category="Snacks", min_stock=15)


@pytest.fixture(scope='function')
def scarce_product(seed):
    return _make_product("8901234567899", "Butter 250g", "4.49", 2, category="Dairy", min_stock=8)


@pytest.fixture(scope='function')
def admin_headers(client, seed):
    return auth_headers(get_auth_token(client, "admin", "admin123"))


@pytest.fixture(scope='function')
def manager_headers(client, seed):
    return auth_headers(get_auth_token(client, "manager1", "manager123"))


@pytest.fixture(scope='function')
def cashier_headers(client, seed):
    return auth_headers(get_auth_token(client, "cashier1", "cashier123"))


def get_auth_token(client, username: str, password: str) -> str:
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
