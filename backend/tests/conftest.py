"""
Pytest fixtures for FinMark backend tests.

Provides test database setup, role-specific users, catalog fixtures, and
test client.
"""

import pytest

from finmark import create_app
from finmark.extensions import db
from finmark.models import Product, User
from finmark.services import token_service
from finmark.services.auth_service import hash_password


DEFAULT_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'RATE_LIMIT_ENABLED': False,
        'SECRET_KEY': 'test-secret',
        'JWT_SECRET_KEY': 'test-jwt-secret',
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

        yield db.session()

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    """One bcrypt hash shared by fixture users (cost 12 is slow to repeat)."""
    return hash_password(DEFAULT_PASSWORD)


def make_user(db_session, password_hash, *, email, role="user", first_name="Test", last_name="User", **extra):
    user = User(
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        role=role,
        **extra,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def customer(db_session, password_hash):
    return make_user(db_session, password_hash, email="customer@example.com", first_name="Juan", last_name="Cruz")


@pytest.fixture(scope='function')
def other_customer(db_session, password_hash):
    return make_user(db_session, password_hash, email="other@example.com", first_name="Maria", last_name="Santos")


@pytest.fixture(scope='function')
def manager(db_session, password_hash):
    return make_user(db_session, password_hash, email="manager@example.com", role="manager", first_name="Store")


@pytest.fixture(scope='function')
def admin(db_session, password_hash):
    return make_user(db_session, password_hash, email="admin@example.com", role="admin", first_name="System")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    return auth_headers(token_service.issue_token(user))


def get_auth_token(client, email: str, password: str = DEFAULT_PASSWORD) -> str:
    """Helper to get auth token through the login endpoint."""
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    if response.status_code == 200:
        return response.get_json()['data']['token']
    return None


@pytest.fixture(scope='function')
def customer_headers(customer):
    return headers_for(customer)


@pytest.fixture(scope='function')
def other_customer_headers(other_customer):
    return headers_for(other_customer)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return headers_for(manager)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return headers_for(admin)


def make_product(db_session, product_id, *, stock=5, price_cents=1000, **extra):
    fields = {
        "name": f"Product {product_id}",
        "description": f"Description for {product_id}",
        "category": "Electronics",
        "min_stock_level": 2,
    }
    fields.update(extra)
    product = Product(
        product_id=product_id,
        price_cents=price_cents,
        stock_quantity=stock,
        images=[],
        specifications={},
        supplier={},
        **fields,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_p1(db_session):
    """P-1: stock 5 at 1500 cents."""
    return make_product(db_session, "P-1", stock=5, price_cents=1500, name="Widget One")


@pytest.fixture(scope='function')
def product_p2(db_session):
    return make_product(db_session, "P-2", stock=10, price_cents=250, name="Widget Two")


def order_payload(*items, **overrides) -> dict:
    """Valid order body; items are (product_id, quantity) pairs."""
    payload = {
        "customer_info": {
            "first_name": "Juan",
            "last_name": "Cruz",
            "email": "customer@example.com",
            "phone": "+639171234567",
        },
        "shipping_address": {
            "street": "123 Main St",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62701",
        },
        "items": [{"product_id": pid, "quantity": qty} for pid, qty in items],
    }
    payload.update(overrides)
    return payload


def stock_of(db_session, product_id: str) -> int:
    db_session.expire_all()
    return db_session.query(Product).filter_by(product_id=product_id).one().stock_quantity
