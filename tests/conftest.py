import pytest

from app import create_app
from models import db
from store import get_store
from Authentication import generate_token


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no database)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")


@pytest.fixture()
def app():
    """Per-test app on a fresh in-memory database."""
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()
    try:
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def store(app):
    return get_store()


@pytest.fixture()
def user_id():
    return "user-1"


def _headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(app, user_id):
    return _headers(generate_token(user_id, "tester@example.com"))


@pytest.fixture()
def other_headers(app):
    return _headers(generate_token("user-2", "other@example.com"))
