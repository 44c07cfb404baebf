"""
Pytest fixtures for the shoppos backend tests.

Provides the in-memory app, test client, a clean database per test and
seed rows (users, catalog, customer, company profile).
"""

import pytest

from shoppos import create_app
from shoppos.extensions import db
from shoppos.models import Brand, Category, CompanyProfile, Customer, Product, User
from shoppos.services.auth_service import hash_password
from shoppos.services.cart_service import get_session_registry
from shoppos.services import session_service


TEST_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CHECKOUT_STOCK_POLICY': 'reject',
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
        get_session_registry().clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    """One bcrypt hash shared by every seeded user."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture(scope='function')
def admin_user(db_session, password_hash):
    user = User(username="admin", password_hash=password_hash, role="admin")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def cashier_user(db_session, password_hash):
    user = User(username="cashier", password_hash=password_hash, role="cashier")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = session_service.create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def cashier_headers(cashier_user):
    _, token = session_service.create_session(cashier_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def company(db_session):
    profile = CompanyProfile(
        company_name="Golden Mart",
        address="12 Market Street",
        phone="09-111-222",
        tax_number="TX-998",
    )
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture(scope='function')
def catalog(db_session):
    """
    cola: price 1,000, cost 600, 10 in stock
    bread: price 1,500, cost 1,000, 2 in stock
    soap: price 2,000, cost 1,200, out of stock
    """
    drinks = Category(name="Drinks")
    bakery = Category(name="Bakery")
    brand = Brand(name="House")
    db_session.add_all([drinks, bakery, brand])
    db_session.flush()

    products = {
        "cola": Product(sku="COLA-1", name="Cola", category_id=drinks.id, brand_id=brand.id,
                        cost_price=600, selling_price=1000, stock_quantity=10),
        "bread": Product(sku="BREAD-1", name="Bread", category_id=bakery.id,
                         cost_price=1000, selling_price=1500, stock_quantity=2, min_stock_level=5),
        "soap": Product(sku="SOAP-1", name="Soap", cost_price=1200, selling_price=2000, stock_quantity=0),
    }
    db_session.add_all(products.values())
    db_session.commit()
    return products


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Aye Aye", phone="09-777-888")
    db_session.add(c)
    db_session.commit()
    return c


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def stock_of(db_session):
    """Reads current stock straight from the table, bypassing the identity map."""
    def _read(product_id: int) -> int:
        return db.session.query(Product.stock_quantity).filter(Product.id == product_id).scalar()
    return _read
