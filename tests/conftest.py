"""
Test configuration and fixtures
"""
import pytest
from fastapi.testclient import TestClient

import config
from database.connection import Database, get_db
from schemas.registration import RegistrationSubmission
from services.registration_store import create_registration

from main import app

ADMIN_PASSWORD = "test-admin-pass"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Known admin password, no SMTP delivery"""
    monkeypatch.setattr(config, "ADMIN_PASS", ADMIN_PASSWORD)
    monkeypatch.setattr(config, "ADMIN_PASS_HASH", None)
    monkeypatch.setattr(config, "SMTP_SERVER", None)
    monkeypatch.setattr(config, "SMTP_USERNAME", None)
    monkeypatch.setattr(config, "SMTP_PASSWORD", None)


@pytest.fixture
def database(tmp_path):
    """A fresh file-based SQLite store for each test"""
    db = Database(f"sqlite:///{tmp_path / 'test.db'}").open()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db_session(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(database):
    """Create a test client with test database"""
    def override_get_db():
        session = database.session()
        try:
            yield session
        finally:
            session.close()

    # Installed before startup so the lifespan leaves the real store alone
    app.state.database = database
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    del app.state.database


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/admin/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def make_registration(db_session):
    """Store a registration directly, bypassing form validation"""
    def _make(form=None, **overrides):
        data = {
            "name": "Asha Verma",
            "email": "asha@example.com",
            "phone": "9876543210",
            "organization": "Allahabad University",
            "groupSize": 1,
            "teamMembers": [{"name": "Asha Verma", "email": "asha@example.com", "phone": "9876543210"}],
        }
        data.update(overrides)
        return create_registration(db_session, RegistrationSubmission.model_validate(data), form)

    return _make


@pytest.fixture
def valid_submission():
    """A payload factory that passes the default form"""
    return submission_payload


def submission_payload(**overrides):
    payload = {
        "name": "Asha Verma",
        "email": "asha@example.com",
        "phone": "9876543210",
        "organization": "Allahabad University",
        "groupSize": 2,
        "teamMembers": [
            {"name": "Asha Verma", "email": "asha@example.com", "phone": "9876543210"},
            {"name": "Ravi Kumar", "email": "ravi@example.com", "phone": "9123456780"},
        ],
    }
    payload.update(overrides)
    return payload
