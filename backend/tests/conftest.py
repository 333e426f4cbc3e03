"""
Pytest fixtures for FoamStock backend tests.

Provides test database setup, staff users per role, catalog fixtures, and test client.
"""

import pytest
from foamstock import create_app
from foamstock.config import TestConfig
from foamstock.extensions import db
from foamstock.models import Customer
from foamstock.services import products_service, stock_service, supplier_service
from foamstock.services.auth_service import create_user


DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def client(app, db_session):
    """Create test client. Cookies are sent explicitly so bearer and cookie auth stay separate."""
    return app.test_client(use_cookies=False)


@pytest.fixture(scope='function')
def owner(db_session):
    return create_user("Bola", "Owner", "owner@foamstock.test", DEFAULT_PASSWORD, "business_owner")


@pytest.fixture(scope='function')
def manager(db_session):
    return create_user("Kemi", "Manager", "manager@foamstock.test", DEFAULT_PASSWORD, "sales_manager")


@pytest.fixture(scope='function')
def salesperson(db_session):
    return create_user("Tunde", "Sales", "sales@foamstock.test", DEFAULT_PASSWORD, "salesperson")


@pytest.fixture(scope='function')
def other_salesperson(db_session):
    return create_user("Ngozi", "Sales", "sales2@foamstock.test", DEFAULT_PASSWORD, "salesperson")


def get_auth_token(client, email: str, password: str = DEFAULT_PASSWORD) -> str:
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
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, owner.email))


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, manager.email))


@pytest.fixture(scope='function')
def salesperson_headers(client, salesperson):
    return auth_headers(get_auth_token(client, salesperson.email))


@pytest.fixture(scope='function')
def supplier(db_session):
    return supplier_service.create_supplier({
        "name": "Vitafoam Depot",
        "company": "Vitafoam Nigeria Plc",
        "contact_person": "Ade Bello",
        "email": "orders@vitafoam.test",
        "phone": "08030000000",
    })


@pytest.fixture(scope='function')
def make_product(db_session, supplier):
    """Factory: product with its stock ledger record and an initial stock count."""
    counter = {"n": 0}

    def _make(stock=10, unit_cost_cents=100, selling_price_cents=150, category="pillow", **extra):
        counter["n"] += 1
        payload = {
            "name": extra.pop("name", f"Test Product {counter['n']}"),
            "category": category,
            "supplier_id": supplier.id,
            "unit_cost_cents": unit_cost_cents,
            "selling_price_cents": selling_price_cents,
        }
        if category == "mattress":
            payload.setdefault("thickness", 6)
            payload.setdefault("density", 30)
        payload.update(extra)
        product = products_service.create_product(payload)
        if stock:
            stock_service.set_stock(product.inventory_record.id, stock, actor_user_id=None, notes="Opening stock")
        return product

    return _make


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="Chidi Okeke", phone="08051111111", email="chidi@example.test")
    db_session.add(customer)
    db_session.commit()
    return customer
