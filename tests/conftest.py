"""
Pytest fixtures and test configuration for timebank tests.
"""

import pytest

from timebank import ExchangeEngine, LedgerConfig
from timebank.events import InMemoryEventSink
from timebank.storage import InMemoryLedgerStorage, SQLiteLedgerStorage


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep tests away from the real ledger file and caller identity."""
    for var in (
        "TIMEBANK_DB_PATH",
        "TIMEBANK_IDENTITY",
        "TIMEBANK_INITIAL_BALANCE",
        "TIMEBANK_INITIAL_REPUTATION",
        "TIMEBANK_MAX_REPUTATION",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config():
    return LedgerConfig()


@pytest.fixture
def event_sink():
    return InMemoryEventSink()


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Every ledger backend."""
    if request.param == "memory":
        backend = InMemoryLedgerStorage()
    else:
        backend = SQLiteLedgerStorage(tmp_path / "ledger.db")
    yield backend
    backend.close()


@pytest.fixture
def engine(storage, config, event_sink):
    """Engine over each backend, with an event recorder attached."""
    return ExchangeEngine(storage, config=config, sinks=[event_sink])


@pytest.fixture
def memory_engine(config, event_sink):
    ledger = ExchangeEngine.in_memory(config=config, sinks=[event_sink])
    yield ledger
    ledger.close()


@pytest.fixture
def alice_and_bob(engine):
    """Alice provides tutoring, Bob requests it. Both hold the initial grant."""
    engine.register("alice", "Alice", ["tutoring"])
    engine.register("bob", "Bob", ["cooking"])
    return engine


@pytest.fixture
def tutoring_offer(alice_and_bob):
    return alice_and_bob.create_offer("alice", "tutoring", "Algebra help", 60, 30)
