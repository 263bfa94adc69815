"""
Pytest Configuration and Fixtures for Flask Application Testing

Provides the Flask application, test client and database session fixtures
shared by the unit and API test modules.

Key Features:
- Flask application factory fixture with TestingConfig (in-memory SQLite)
- Fresh schema per test through db.create_all()/db.drop_all()
- Factory Boy integration through tests.factories
"""

import pytest

from app import create_app
from models import db as _db


# =============================================================================
# PYTEST CONFIGURATION AND MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Unit tests for individual components and functions"
    )
    config.addinivalue_line(
        "markers",
        "integration: Integration tests for API endpoints and services"
    )


# =============================================================================
# FLASK APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def app():
    """
    Flask application configured for testing.

    The schema is created inside an application context that stays pushed
    for the duration of the test.
    """
    app = create_app('testing')

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Flask CLI runner."""
    return app.test_cli_runner()


@pytest.fixture
def db_session(app):
    """Flask-SQLAlchemy session bound to the test database."""
    yield _db.session
    _db.session.rollback()

