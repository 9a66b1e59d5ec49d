"""
Pytest fixtures for MAELZA backend tests.

Provides test database setup, catalog fixtures, and test client.
"""

import pytest
from maelza import create_app
from maelza.extensions import db
from maelza.models import Customer, Supplier, Product, AccountPayable


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'SQLITE_IMMEDIATE_TRANSACTIONS': True,
    'LOG_LEVEL': 'DEBUG',
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


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Cliente Uno", tax_id="10456789012")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def supplier(db_session):
    s = Supplier(name="Proveedor Uno", tax_id="20100200300")
    db_session.add(s)
    db_session.commit()
    return s


def make_product(db_session, *, code: str, stock: int = 10, sale_price_cents: int = 10000,
                 cost_price_cents: int = 6000, is_active: bool = True) -> Product:
    """Helper to add a committed product."""
    p = Product(
        code=code,
        name=f"Product {code}",
        stock=stock,
        sale_price_cents=sale_price_cents,
        cost_price_cents=cost_price_cents,
        is_active=is_active,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def product(db_session):
    """Product P: stock 10, sale price 100.00, cost 60.00."""
    return make_product(db_session, code="P-001")


@pytest.fixture(scope='function')
def other_product(db_session):
    return make_product(db_session, code="P-002", stock=4, sale_price_cents=2550, cost_price_cents=1000)


def add_payable(db_session, purchase_id: int, *, amount_cents: int, paid_amount_cents: int = 0) -> AccountPayable:
    payable = AccountPayable(
        purchase_id=purchase_id,
        amount_cents=amount_cents,
        paid_amount_cents=paid_amount_cents,
        status="PARTIAL" if paid_amount_cents else "PENDING",
    )
    db_session.add(payable)
    db_session.commit()
    return payable


def stock_of(db_session, product_id: int) -> int:
    """Read stock straight from the database."""
    db_session.expire_all()
    return db_session.get(Product, product_id).stock
