"""Ledger engine wiring for the backend."""

import threading
from typing import Annotated

from fastapi import Depends

from timebank import ExchangeEngine, LedgerConfig
from timebank.events import LoggingEventSink

from .config import Settings, get_settings

_engine: ExchangeEngine | None = None
# get_engine is a sync dependency and runs in the threadpool
_engine_lock = threading.Lock()


def _build_engine(settings: Settings) -> ExchangeEngine:
    config = LedgerConfig(
        initial_balance=settings.initial_balance,
        initial_reputation=settings.initial_reputation,
    )
    sinks = [LoggingEventSink()]
    if settings.database_path:
        return ExchangeEngine.sqlite(settings.database_path, config=config, sinks=sinks)
    return ExchangeEngine.in_memory(config=config, sinks=sinks)


def get_ledger_engine(settings: Settings | None = None) -> ExchangeEngine:
    """Get the process-wide ledger engine, creating it on first use."""
    global _engine
    if _engine is not None:
        return _engine
    with _engine_lock:
        if _engine is None:
            _engine = _build_engine(settings or get_settings())
        return _engine


def get_engine(settings: Annotated[Settings, Depends(get_settings)]) -> ExchangeEngine:
    """FastAPI dependency for the ledger engine."""
    return get_ledger_engine(settings)


def close_ledger_engine() -> None:
    """Close the process-wide engine, if one was created."""
    global _engine
    with _engine_lock:
        if _engine is not None:
            _engine.close()
            _engine = None


# Type alias for dependency injection
Ledger = Annotated[ExchangeEngine, Depends(get_engine)]
