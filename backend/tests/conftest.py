"""
Pytest fixtures for posledger backend tests.

Provides an in-memory application, a clean database per test, and catalog,
staff and customer fixtures.
"""

import pytest
from posledger import create_app
from posledger.extensions import db
from posledger.models import Customer
from posledger.services import auth_service, catalog_service
from posledger.services.cart_service import Cart
from posledger.services.terminal_service import EXTENSION_KEY


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'DEMO_SEED_ENABLED': False,
        'POS_PAYMENT_METHODS': ('cash', 'card', 'upi'),
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
    """Fresh database and terminal for each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()
    app.extensions.pop(EXTENSION_KEY, None)

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def cashier(db_session):
    return auth_service.create_user("cashier", "Cashier User", "cashier123", "cashier")


@pytest.fixture(scope='function')
def admin(db_session):
    return auth_service.create_user("admin", "Admin User", "admin123", "admin")


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="John Doe", phone="+1-555-0123", email="john.doe@email.com", loyalty_points=150)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name=..., price_cents=..., ...) -> Product"""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        payload = {
            "name": f"Product {counter['n']}",
            "price_cents": 1000,
            "cost_cents": 600,
            "tax_rate_bps": 1800,
            "stock": 10,
            "category": "General",
            "barcode": f"99000000{counter['n']:04d}",
        }
        payload.update(overrides)
        return catalog_service.create_product(payload)

    return _make


@pytest.fixture(scope='function')
def widget(make_product):
    """Price 10.00, tax 18%, cost 6.00, 10 in stock."""
    return make_product(name="Widget", price_cents=1000, cost_cents=600, tax_rate_bps=1800, stock=10)


@pytest.fixture(scope='function')
def scenario_cart(widget):
    """One line: 2 x Widget -> subtotal 20.00, tax 3.60, total 23.60."""
    cart = Cart()
    cart.add_item(widget, 2)
    return cart

