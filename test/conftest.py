import pytest
from fastapi.testclient import TestClient

from _helper import FakeIdempotency, FakeOrderStore
from app import transitions
from app.config import settings
from app.main import app
from app.routes import admin, orders


@pytest.fixture
def store(monkeypatch) -> FakeOrderStore:
    fake = FakeOrderStore()
    for module in (orders, admin, transitions):
        monkeypatch.setattr(module, "get_pool", fake.get_pool)
    for module in (orders, admin):
        monkeypatch.setattr(module, "fetch_order", fake.fetch_order)
        monkeypatch.setattr(module, "list_orders", fake.list_orders)
    monkeypatch.setattr(orders, "insert_order", fake.insert_order)
    monkeypatch.setattr(orders, "fetch_tracking", fake.fetch_tracking)
    monkeypatch.setattr(transitions, "transition_order", fake.transition_order)
    return fake


@pytest.fixture
def idempotency(monkeypatch) -> FakeIdempotency:
    fake = FakeIdempotency()
    monkeypatch.setattr(orders, "check_idempotency", fake.check)
    monkeypatch.setattr(orders, "release_idempotency", fake.release)
    return fake


@pytest.fixture
def client(store, idempotency) -> TestClient:
    # No context manager: lifespan (Postgres/Redis) is not started
    return TestClient(app)


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Token": settings.admin_token}
