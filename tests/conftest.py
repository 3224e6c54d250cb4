"""
Shared pytest fixtures for the Document Manager test suite.

Provides:
    - app: Flask application (session-scoped)
    - session: Per-test app context + table recreate (autouse)
    - client: Flask test client
    - store: the app's DocumentStore handle

The test database is a SQLite *file*: fan-out branches run on worker threads
with their own connections, so seeded rows must be committed to a database
every connection can see.
"""

import os
import tempfile

import pytest

_TEST_DB_DIR = tempfile.mkdtemp(prefix="docmanager-tests-")
os.environ.setdefault(
    "TEST_DATABASE_URL", f"sqlite:///{os.path.join(_TEST_DB_DIR, 'docmanager_test.db')}"
)

from docmanager import create_app  # noqa: E402
from docmanager.models import db as _db  # noqa: E402


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(autouse=True)
def session(app):
    """Per-test: open app context, drop and recreate all tables afterwards."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.session.remove()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def store(app):
    """DocumentStore handle shared by the app."""
    return app.extensions["document_store"]
