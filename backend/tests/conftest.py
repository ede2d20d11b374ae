"""Pytest configuration and fixtures."""

import os

import pytest

# Always run the API against a throwaway in-memory ledger
os.environ.pop("TIMEBANK_DATABASE_PATH", None)

from app.database import get_engine  # noqa: E402
from app.main import app  # noqa: E402
from app.rate_limit import limiter  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from timebank import ExchangeEngine  # noqa: E402
from timebank.events import InMemoryEventSink  # noqa: E402


@pytest.fixture
def event_sink():
    return InMemoryEventSink()


@pytest.fixture
def engine(event_sink):
    """Fresh in-memory ledger per test."""
    ledger = ExchangeEngine.in_memory(sinks=[event_sink])
    yield ledger
    ledger.close()


@pytest.fixture
def client(engine):
    """Create a test client bound to the per-test ledger."""
    app.dependency_overrides[get_engine] = lambda: engine
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        limiter.enabled = True
        app.dependency_overrides.clear()


ALICE = {"X-Caller-Identity": "alice"}
BOB = {"X-Caller-Identity": "bob"}


@pytest.fixture
def alice_and_bob(client):
    """Register alice (provider) and bob (requester)."""
    client.post("/api/v1/accounts", json={"name": "Alice", "skills": ["tutoring"]}, headers=ALICE)
    client.post("/api/v1/accounts", json={"name": "Bob"}, headers=BOB)
    return client
