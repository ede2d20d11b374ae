"""SQLite schema for the ledger."""

import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS accounts (
    identity TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    skills TEXT NOT NULL DEFAULT '[]',       -- JSON list of tags
    balance INTEGER NOT NULL CHECK (balance >= 0),
    reputation INTEGER NOT NULL CHECK (reputation BETWEEN 0 AND 100),
    registered INTEGER NOT NULL DEFAULT 1,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS offers (
    id INTEGER PRIMARY KEY,
    provider TEXT NOT NULL REFERENCES accounts(identity),
    category TEXT NOT NULL,
    description TEXT NOT NULL,
    time_required INTEGER NOT NULL CHECK (time_required > 0),
    time_cost INTEGER NOT NULL CHECK (time_cost > 0),
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_offers_provider ON offers(provider);
CREATE INDEX IF NOT EXISTS idx_offers_category ON offers(category);

CREATE TABLE IF NOT EXISTS service_requests (
    id INTEGER PRIMARY KEY,
    requester TEXT NOT NULL REFERENCES accounts(identity),
    provider TEXT NOT NULL REFERENCES accounts(identity),
    offer_id INTEGER NOT NULL REFERENCES offers(id),
    status TEXT NOT NULL CHECK (status IN ('pending', 'completed', 'cancelled')),
    created_at TEXT,
    completed_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_requests_requester ON service_requests(requester);
CREATE INDEX IF NOT EXISTS idx_requests_provider ON service_requests(provider);

CREATE TABLE IF NOT EXISTS request_transitions (
    id TEXT PRIMARY KEY,
    request_id INTEGER NOT NULL REFERENCES service_requests(id),
    from_status TEXT,
    to_status TEXT NOT NULL,
    actor TEXT NOT NULL,
    created_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_transitions_request ON request_transitions(request_id);

-- Monotonic id counters; ids are never reused
CREATE TABLE IF NOT EXISTS ledger_counters (
    name TEXT PRIMARY KEY,
    value INTEGER NOT NULL
);
"""


def init_db(conn: sqlite3.Connection) -> None:
    """Create tables and seed counters if they do not exist yet."""
    conn.executescript(SCHEMA)
    conn.execute(
        "INSERT OR IGNORE INTO ledger_counters (name, value) VALUES ('offer', 0), ('request', 0)"
    )
    row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
    if row[0] is None:
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        logger.debug(f"Initialized ledger schema v{SCHEMA_VERSION}")
