"""
Pytest fixtures for bizops backend tests.

Provides the application, a fresh database per test, user fixtures per
role/tier and a login helper that goes through the real /api/login route.
"""

import pytest
from bizops import create_app
from bizops.config import TestConfig
from bizops.extensions import db
from bizops.models import Customer, Product, Vendor
from bizops.services.auth_service import create_user


PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
def make_user(db_session):
    """Factory: make_user("alice", role="manager", tier="premium")."""
    def _make(username: str, role: str = "sales", tier: str = "standard"):
        return create_user(
            username=username,
            email=f"{username}@example.com",
            password=PASSWORD,
            role=role,
            subscription_tier=tier,
        )
    return _make


@pytest.fixture(scope='function')
def login(app):
    """
    Log in through /api/login on a separate client and return Bearer headers.

    A separate client keeps the session cookie out of the test's own client.
    """
    def _login(username: str, password: str = PASSWORD) -> dict:
        resp = app.test_client().post("/api/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return {"Authorization": f"Bearer {resp.get_json()['token']}"}
    return _login


@pytest.fixture(scope='function')
def admin_user(make_user):
    return make_user("admin", role="admin", tier="premium")


@pytest.fixture(scope='function')
def sales_user(make_user):
    return make_user("seller", role="sales", tier="standard")


@pytest.fixture(scope='function')
def admin_headers(admin_user, login):
    return login(admin_user.username)


@pytest.fixture(scope='function')
def sales_headers(sales_user, login):
    return login(sales_user.username)


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name: str = "Widget", *, price_cents: int = 250, quantity: int = 10,
              low_stock_threshold: int = 5, cost_cents: int | None = 100, **extra):
        product = Product(
            name=name,
            price_cents=price_cents,
            cost_cents=cost_cents,
            quantity=quantity,
            low_stock_threshold=low_stock_threshold,
            is_active=extra.pop("is_active", True),
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Acme Retail", email="buyer@acme.test", total_due_cents=0)
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def vendor(db_session):
    v = Vendor(name="Supply Co", email="orders@supply.test", total_due_cents=0, performance_score=100)
    db_session.add(v)
    db_session.commit()
    return v


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Read on-hand quantity straight from the database, bypassing the identity map."""
    def _stock(product_id: int) -> int:
        return db_session.query(Product.quantity).filter(Product.id == product_id).scalar()
    return _stock
