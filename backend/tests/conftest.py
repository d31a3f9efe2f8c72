import os

# Set test environment before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LLM_ENABLED"] = "false"
os.environ["SEED_TEMPLATES_ON_STARTUP"] = "false"

import pytest
from fastapi.testclient import TestClient

import app.models  # noqa: F401
from app.core.auth import get_password_hash
from app.core.config import settings
from app.db.base import Base, SessionLocal, engine
from app.main import app as fastapi_app
from app.models.user import User
from app.services.protocols.template_engine import ProtocolTemplateEngine

PASSWORD = "Password123!"


@pytest.fixture
def db():
    """Fresh schema for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fast_retries(monkeypatch):
    monkeypatch.setattr(settings, "fetch_retry_backoff_s", 0.0)


@pytest.fixture
def client(db):
    return TestClient(fastapi_app)


@pytest.fixture
def make_user(db):
    def _make(email, role="trainer", name=None, password=PASSWORD):
        user = User(email=email, role=role, name=name, password_hash=get_password_hash(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def templates(db):
    ProtocolTemplateEngine(db).seed_builtin_templates()
    return ProtocolTemplateEngine(db).list_templates()


@pytest.fixture
def login(client):
    """Log in and return bearer headers. The cookie is dropped so tests stay explicit."""

    def _login(email, password=PASSWORD):
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture
def trainer(make_user):
    return make_user("trainer@example.com", role="trainer", name="Tara Trainer")


@pytest.fixture
def customer(make_user):
    return make_user("customer@example.com", role="customer", name="Cam Customer")


@pytest.fixture
def trainer_headers(trainer, login):
    return login(trainer.email)
