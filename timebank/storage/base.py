"""Storage protocol for ledger backends.

A backend exposes two kinds of views over ledger state:

- ``snapshot()``: a read-only, consistent view of committed state. Readers
  never take the writer lock and never observe a half-applied transaction.
- ``transaction()``: a writable unit of work. Writers are serialized; the
  unit commits when the ``with`` block exits normally and rolls back when it
  raises, so a failed operation leaves no trace.

Both are context managers yielding an object that implements ``LedgerView``
(and, for transactions, ``LedgerUnit``). The domain stores in
``timebank.accounts``, ``timebank.offers`` and ``timebank.request_ledger``
work against these views and never touch a backend directly.

Currently supported:
- InMemoryLedgerStorage: copy-on-write snapshots behind a writer lock
- SQLiteLedgerStorage: WAL-mode SQLite with ``BEGIN IMMEDIATE`` writers
"""

from typing import ContextManager, List, Optional, Protocol, runtime_checkable

from timebank.models import (
    Account,
    Offer,
    RequestStateTransition,
    RequestStatus,
    ServiceRequest,
)


class ReadOnlyViewError(RuntimeError):
    """Raised when a write is attempted through a snapshot view."""


@runtime_checkable
class LedgerView(Protocol):
    """Read access to ledger state."""

    def get_account(self, identity: str) -> Optional[Account]:
        """Get an account by identity."""
        ...

    def list_accounts(self, skill: Optional[str] = None) -> List[Account]:
        """List accounts ordered by identity, optionally filtered by skill."""
        ...

    def total_balance(self) -> int:
        """Sum of all account balances."""
        ...

    def get_offer(self, offer_id: int) -> Optional[Offer]:
        """Get an offer by ID."""
        ...

    def list_offers(
        self,
        provider: Optional[str] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Offer]:
        """List offers ordered by id with optional filters."""
        ...

    def get_request(self, request_id: int) -> Optional[ServiceRequest]:
        """Get a request by ID."""
        ...

    def list_requests(
        self,
        requester: Optional[str] = None,
        provider: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ServiceRequest]:
        """List requests ordered by id with optional filters."""
        ...

    def get_transitions(self, request_id: int) -> List[RequestStateTransition]:
        """Get all state transitions for a request, oldest first."""
        ...


@runtime_checkable
class LedgerUnit(LedgerView, Protocol):
    """A writable unit of work. Changes become visible only on commit."""

    def save_account(self, account: Account) -> None:
        """Insert or replace an account."""
        ...

    def next_offer_id(self) -> int:
        """Allocate the next offer id. Ids start at 1 and are never reused."""
        ...

    def save_offer(self, offer: Offer) -> None:
        """Insert or replace an offer."""
        ...

    def next_request_id(self) -> int:
        """Allocate the next request id. Ids start at 1 and are never reused."""
        ...

    def save_request(self, request: ServiceRequest) -> None:
        """Insert or replace a request."""
        ...

    def save_transition(self, transition: RequestStateTransition) -> None:
        """Append a state transition record."""
        ...


class LedgerStorage(Protocol):
    """Protocol for ledger persistence backends."""

    def snapshot(self) -> ContextManager[LedgerView]:
        """Open a consistent read-only view of committed state."""
        ...

    def transaction(self) -> ContextManager[LedgerUnit]:
        """Open a serialized, all-or-nothing unit of work."""
        ...

    def close(self) -> None:
        """Release backend resources."""
        ...
