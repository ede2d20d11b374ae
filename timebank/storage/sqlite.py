"""SQLite ledger storage.

Local-first durable backend. Each snapshot or transaction opens its own
connection:

- Transactions start with ``BEGIN IMMEDIATE``, which takes the database write
  lock up front so concurrent writers (threads or processes) are serialized.
  Lock waits are bounded by ``busy_timeout``.
- Snapshots run inside a deferred read transaction. In WAL mode a reader sees
  the database as of its first read and never blocks, or is blocked by, a
  writer.
"""

import contextlib
import json
import logging
import sqlite3
from pathlib import Path
from typing import Iterator, List, Optional

from timebank.models import (
    Account,
    Offer,
    RequestStateTransition,
    RequestStatus,
    ServiceRequest,
    format_datetime,
    normalize_tag,
    parse_datetime,
)
from timebank.storage.base import ReadOnlyViewError
from timebank.storage.schema import init_db

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_MS = 5000


def _row_to_account(row: sqlite3.Row) -> Account:
    """Convert a database row to an Account."""
    return Account(
        identity=row["identity"],
        name=row["name"],
        skills=json.loads(row["skills"]) if row["skills"] else [],
        balance=row["balance"],
        reputation=row["reputation"],
        registered=bool(row["registered"]),
        created_at=parse_datetime(row["created_at"]),
    )


def _row_to_offer(row: sqlite3.Row) -> Offer:
    """Convert a database row to an Offer."""
    return Offer(
        id=row["id"],
        provider=row["provider"],
        category=row["category"],
        description=row["description"],
        time_required=row["time_required"],
        time_cost=row["time_cost"],
        active=bool(row["active"]),
        created_at=parse_datetime(row["created_at"]),
    )


def _row_to_request(row: sqlite3.Row) -> ServiceRequest:
    """Convert a database row to a ServiceRequest."""
    return ServiceRequest(
        id=row["id"],
        requester=row["requester"],
        provider=row["provider"],
        offer_id=row["offer_id"],
        status=row["status"],
        created_at=parse_datetime(row["created_at"]),
        completed_at=parse_datetime(row["completed_at"]),
    )


def _row_to_transition(row: sqlite3.Row) -> RequestStateTransition:
    """Convert a database row to a RequestStateTransition."""
    return RequestStateTransition(
        id=row["id"],
        request_id=row["request_id"],
        from_status=row["from_status"],
        to_status=row["to_status"],
        actor=row["actor"],
        created_at=parse_datetime(row["created_at"]),
    )


class _SQLiteView:
    """Ledger view bound to one open connection and transaction."""

    def __init__(self, conn: sqlite3.Connection, writable: bool = False):
        self._conn = conn
        self._writable = writable

    def _check_writable(self):
        if not self._writable:
            raise ReadOnlyViewError("Snapshot views are read-only")

    def _next_id(self, counter: str) -> int:
        self._check_writable()
        self._conn.execute(
            "UPDATE ledger_counters SET value = value + 1 WHERE name = ?", (counter,)
        )
        row = self._conn.execute(
            "SELECT value FROM ledger_counters WHERE name = ?", (counter,)
        ).fetchone()
        return row["value"]

    # === Accounts ===

    def get_account(self, identity: str) -> Optional[Account]:
        row = self._conn.execute(
            "SELECT * FROM accounts WHERE identity = ?", (identity,)
        ).fetchone()
        return _row_to_account(row) if row else None

    def list_accounts(self, skill: Optional[str] = None) -> List[Account]:
        rows = self._conn.execute("SELECT * FROM accounts ORDER BY identity").fetchall()
        accounts = [_row_to_account(r) for r in rows]
        if skill is not None:
            tag = normalize_tag(skill)
            accounts = [a for a in accounts if tag in a.skills]
        return accounts

    def total_balance(self) -> int:
        row = self._conn.execute(
            "SELECT COALESCE(SUM(balance), 0) AS total FROM accounts"
        ).fetchone()
        return row["total"]

    def save_account(self, account: Account) -> None:
        self._check_writable()
        self._conn.execute(
            "INSERT INTO accounts "
            "(identity, name, skills, balance, reputation, registered, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(identity) DO UPDATE SET "
            "name = excluded.name, skills = excluded.skills, balance = excluded.balance, "
            "reputation = excluded.reputation, registered = excluded.registered",
            (
                account.identity,
                account.name,
                json.dumps(account.skills),
                account.balance,
                account.reputation,
                int(account.registered),
                format_datetime(account.created_at),
            ),
        )

    # === Offers ===

    def get_offer(self, offer_id: int) -> Optional[Offer]:
        row = self._conn.execute("SELECT * FROM offers WHERE id = ?", (offer_id,)).fetchone()
        return _row_to_offer(row) if row else None

    def list_offers(
        self,
        provider: Optional[str] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Offer]:
        clauses = []
        params: list = []
        if provider is not None:
            clauses.append("provider = ?")
            params.append(provider)
        if category is not None:
            clauses.append("category = ?")
            params.append(normalize_tag(category))
        if active is not None:
            clauses.append("active = ?")
            params.append(int(active))

        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        rows = self._conn.execute(
            f"SELECT * FROM offers {where}ORDER BY id LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return [_row_to_offer(r) for r in rows]

    def next_offer_id(self) -> int:
        return self._next_id("offer")

    def save_offer(self, offer: Offer) -> None:
        self._check_writable()
        self._conn.execute(
            "INSERT INTO offers "
            "(id, provider, category, description, time_required, time_cost, active, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET active = excluded.active",
            (
                offer.id,
                offer.provider,
                offer.category,
                offer.description,
                offer.time_required,
                offer.time_cost,
                int(offer.active),
                format_datetime(offer.created_at),
            ),
        )

    # === Requests ===

    def get_request(self, request_id: int) -> Optional[ServiceRequest]:
        row = self._conn.execute(
            "SELECT * FROM service_requests WHERE id = ?", (request_id,)
        ).fetchone()
        return _row_to_request(row) if row else None

    def list_requests(
        self,
        requester: Optional[str] = None,
        provider: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ServiceRequest]:
        clauses = []
        params: list = []
        if requester is not None:
            clauses.append("requester = ?")
            params.append(requester)
        if provider is not None:
            clauses.append("provider = ?")
            params.append(provider)
        if status is not None:
            clauses.append("status = ?")
            params.append(RequestStatus(status).value)

        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        rows = self._conn.execute(
            f"SELECT * FROM service_requests {where}ORDER BY id LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return [_row_to_request(r) for r in rows]

    def next_request_id(self) -> int:
        return self._next_id("request")

    def save_request(self, request: ServiceRequest) -> None:
        self._check_writable()
        self._conn.execute(
            "INSERT INTO service_requests "
            "(id, requester, provider, offer_id, status, created_at, completed_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET "
            "status = excluded.status, completed_at = excluded.completed_at",
            (
                request.id,
                request.requester,
                request.provider,
                request.offer_id,
                request.status.value,
                format_datetime(request.created_at),
                format_datetime(request.completed_at),
            ),
        )

    # === Transitions ===

    def get_transitions(self, request_id: int) -> List[RequestStateTransition]:
        rows = self._conn.execute(
            "SELECT * FROM request_transitions WHERE request_id = ? ORDER BY rowid",
            (request_id,),
        ).fetchall()
        return [_row_to_transition(r) for r in rows]

    def save_transition(self, transition: RequestStateTransition) -> None:
        self._check_writable()
        self._conn.execute(
            "INSERT INTO request_transitions "
            "(id, request_id, from_status, to_status, actor, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                transition.id,
                transition.request_id,
                transition.from_status.value if transition.from_status else None,
                transition.to_status.value,
                transition.actor,
                format_datetime(transition.created_at),
            ),
        )


class SQLiteLedgerStorage:
    """Durable ledger storage backed by a single SQLite file."""

    def __init__(self, db_path: Path):
        if str(db_path) == ":memory:":
            raise ValueError("SQLite ledger needs a file path; use InMemoryLedgerStorage instead")
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Open a connection in autocommit mode; transactions are explicit."""
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _init_db(self):
        """Initialize the database schema."""
        with contextlib.closing(self._get_conn()) as conn:
            init_db(conn)

    @contextlib.contextmanager
    def _connect(self, begin: str):
        """Open a connection, run one transaction, and always close it.

        Commits on success, rolls back on any exception.
        """
        conn = self._get_conn()
        try:
            conn.execute(begin)
            yield conn
            conn.execute("COMMIT")
        except Exception as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def snapshot(self) -> Iterator[_SQLiteView]:
        """Open a consistent read-only view of committed state."""
        with self._connect("BEGIN DEFERRED") as conn:
            yield _SQLiteView(conn)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[_SQLiteView]:
        """Open a serialized write transaction."""
        with self._connect("BEGIN IMMEDIATE") as conn:
            yield _SQLiteView(conn, writable=True)

    def close(self) -> None:
        """Connections are per-operation; nothing to close."""
        pass
