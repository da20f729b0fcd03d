"""
Pytest fixtures for stockbook backend tests.

Provides test database setup, two tenants with API tokens, and test client.
"""

import pytest
from stockbook import create_app
from stockbook.config import TestingConfig
from stockbook.extensions import db
from stockbook.models import Company, InventoryItem
from stockbook.services.auth_service import issue_token
from stockbook.services.stock_levels import derive_stock_status


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    upload_dir = tmp_path_factory.mktemp("uploads")
    app = create_app(TestingConfig, UPLOAD_FOLDER=str(upload_dir))

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
def company_a(db_session):
    """Create Company A (first tenant)."""
    company = Company(name="Company A - Acme Corp", code="ACME", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def company_b(db_session):
    """Create Company B (second tenant)."""
    company = Company(name="Company B - Beta Inc", code="BETA", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def token_a(db_session, company_a):
    """Plaintext API token for Company A."""
    _, plaintext = issue_token(company_a.id, label="tests")
    return plaintext


@pytest.fixture(scope='function')
def token_b(db_session, company_b):
    """Plaintext API token for Company B."""
    _, plaintext = issue_token(company_b.id, label="tests")
    return plaintext


def _insert_item(db_session, company, *, sku, quantity=15, price_cents=1000, name=None, category=None):
    item = InventoryItem(
        company_id=company.id,
        name=name or f"Item {sku}",
        sku=sku,
        quantity=quantity,
        price_cents=price_cents,
        category=category,
        status=derive_stock_status(quantity),
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def item_a(db_session, company_a):
    """Item in Company A with 15 units (in_stock)."""
    return _insert_item(db_session, company_a, sku="ITEM-A-001", quantity=15, price_cents=1000)


@pytest.fixture(scope='function')
def item_b(db_session, company_b):
    """Item in Company B with 15 units (in_stock)."""
    return _insert_item(db_session, company_b, sku="ITEM-B-001", quantity=15, price_cents=2000)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def headers_a(token_a):
    return auth_headers(token_a)


@pytest.fixture(scope='function')
def headers_b(token_b):
    return auth_headers(token_b)


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory: insert an inventory item directly (status derived the same way services do)."""
    def _make(company, **kwargs):
        return _insert_item(db_session, company, **kwargs)
    return _make
