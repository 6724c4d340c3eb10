"""
Shared pytest fixtures for the ConstructX test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - project: Pre-created Project (via the API)
    - budget / approved_budget: Draft or Approved budget on ``project``
"""

import pytest

from constructx import create_app
from constructx.models import db as _db


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Create the Flask application once per test session."""
    application = create_app("testing")
    application.config["UPLOAD_FOLDER"] = str(tmp_path_factory.mktemp("uploads"))
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def project(client):
    """Create and return a test Project via the API."""
    res = client.post("/api/v1/projects", json={
        "name": "Harbor View Apartments",
        "status": "Active",
        "budget": 500000,
        "start_date": "2024-01-01",
    })
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def budget(client, project):
    """A Draft budget of 100,000 on ``project``."""
    res = client.post(f"/api/v1/projects/{project['id']}/budgets", json={
        "name": "Main Budget",
        "total_amount": 100000,
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
    })
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def approved_budget(client, budget):
    res = client.put(f"/api/v1/budgets/{budget['id']}/approve")
    assert res.status_code == 200
    return res.get_json()
