"""
Pytest fixtures for resale wallet tests.

Provides the Flask app on an in-memory SQLite database, a per-test table
wipe, both repository implementations and a test client.
"""

from datetime import date

import pytest

from resale_wallet import create_app
from resale_wallet.extensions import db
from resale_wallet.repositories import InMemoryRepository, SqlRepository
from resale_wallet.services import inventory_service

USER = "user-a"
OTHER_USER = "user-b"
TODAY = date(2026, 3, 18)  # a Wednesday


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WALLET_REPOSITORY': 'sql',
        'WALLET_SEED_DEMO': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
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
def memory_repo():
    return InMemoryRepository()


@pytest.fixture(scope='function', params=['memory', 'sql'])
def repo(request):
    """Each test using this runs once per repository implementation."""
    if request.param == 'memory':
        return InMemoryRepository()
    request.getfixturevalue('db_session')
    return SqlRepository()


@pytest.fixture(scope='function')
def sneakers(repo):
    """Product bought at 45.00 with a single pair in size 42."""
    return inventory_service.create_product(
        repo,
        USER,
        name="Nike Air Max 90",
        purchase_price="45.00",
        purchase_date=date(2026, 3, 1),
        variants=[{"label": "42", "quantity": 1}],
    )


@pytest.fixture(scope='function')
def blazer(repo):
    """Product bought at 25.00 in sizes S and M, one of each."""
    return inventory_service.create_product(
        repo,
        USER,
        name="Zara Oversized Blazer",
        purchase_price="25.00",
        purchase_date=date(2026, 2, 20),
        variants=[{"label": "S", "quantity": 1}, {"label": "M", "quantity": 1}],
    )


def variant_by_label(product, label):
    return next(v for v in product.variants if v.label == label)


def user_headers(user_id: str = USER) -> dict:
    """Helper to create the upstream auth header."""
    return {'X-User-Id': user_id}
