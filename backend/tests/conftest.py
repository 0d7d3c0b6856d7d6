"""
Pytest fixtures for the Yomo shop backend tests.

Provides the in-memory application, the test client, a clean database per
test, an access code with an authenticated session, and a stock item factory.
"""

import pytest
from yomo import create_app
from yomo.extensions import db
from yomo.models import StockItem
from yomo.services import auth_service
from yomo.services.inventory_store import inventory_store


TEST_CODE = "4321"


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
def access_code(db_session):
    """Active access code "counter" / TEST_CODE."""
    return auth_service.add_access_code("counter", TEST_CODE)


@pytest.fixture(scope='function')
def token(client, access_code):
    return get_auth_token(client, TEST_CODE)


@pytest.fixture(scope='function')
def headers(token):
    return auth_headers(token)


@pytest.fixture(scope='function')
def make_item(db_session):
    """
    Stock item factory.

    make_item(name="Tee", total=10, sold=3, price_cents=25000, category="T-Shirt")
    """
    def _make(name="Basic Tee", total=10, sold=0, price_cents=25000, category="T-Shirt", barcode=None):
        fields = {"name": name, "total": total, "price_cents": price_cents, "category": category}
        if barcode:
            fields["barcode"] = barcode
        item = inventory_store.create(fields)
        if sold:
            item = inventory_store.update(item.id, item.category, {"sold": sold})
        return item

    return _make


def stock_row(item_id: int) -> StockItem:
    """Reload a stock row, bypassing anything cached in the test session."""
    db.session.expire_all()
    return db.session.get(StockItem, item_id)


def get_auth_token(client, code: str) -> str:
    """Helper to get a session token for an access code."""
    response = client.post('/api/auth/login', json={'code': code})
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
