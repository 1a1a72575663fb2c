"""Shared pytest fixtures: in-memory database, API client, bearer tokens."""

import os

os.environ["POSTGRES_DSN"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.api.deps import get_db
from storefront.core.auth import create_access_token
from storefront.db.session import Base
from storefront.kafka import producer
from storefront.main import app
import storefront.db.models  # noqa

ADDRESS = {
    "street": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zip_code": "62701",
    "country": "US",
}


def bearer(email: str, role: str = "customer") -> dict:
    token, _ = create_access_token(email, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def sent_events(monkeypatch):
    """Captures what would have gone to Kafka."""
    events = []
    monkeypatch.setattr(producer, "send", lambda topic, key, value: events.append((topic, key, value)))
    return events


@pytest.fixture
def client(session_factory, sent_events):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def customer():
    return bearer("cust@example.com", "customer")


@pytest.fixture
def admin():
    return bearer("admin@example.com", "admin")


@pytest.fixture
def seller():
    return bearer("seller@example.com", "seller")


@pytest.fixture
def make_order(client, customer):
    counter = {"n": 0}

    def _make(items=None, headers=None, payment_id=None):
        counter["n"] += 1
        body = {
            "items": items or [{"product_id": 1, "quantity": 1, "price": "10.00"}],
            "shipping_address": ADDRESS,
            "payment_method": "stripe",
            "payment_info": {"id": payment_id or f"pi_test_{counter['n']}", "status": "succeeded"},
        }
        resp = client.post("/order/v1/orders", json=body, headers=headers or customer)
        assert resp.status_code == 201, resp.text
        return resp.json()["order"]

    return _make
