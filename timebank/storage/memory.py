"""In-memory ledger storage for testing, embedding, and local development.

State lives in a single ``_LedgerState`` object that is never modified once
published. A transaction works on a shallow copy and, on commit, swaps the
copy in with one reference assignment. Snapshots simply hold on to whichever
state was current when they were opened, so they are always consistent and
never wait for writers.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Tuple

from timebank.models import (
    Account,
    Offer,
    RequestStateTransition,
    RequestStatus,
    ServiceRequest,
    normalize_tag,
)
from timebank.storage.base import ReadOnlyViewError

logger = logging.getLogger(__name__)


@dataclass
class _LedgerState:
    accounts: Dict[str, Account] = field(default_factory=dict)
    offers: Dict[int, Offer] = field(default_factory=dict)
    requests: Dict[int, ServiceRequest] = field(default_factory=dict)
    transitions: Dict[int, Tuple[RequestStateTransition, ...]] = field(default_factory=dict)
    last_offer_id: int = 0
    last_request_id: int = 0

    def copy(self) -> "_LedgerState":
        return _LedgerState(
            accounts=dict(self.accounts),
            offers=dict(self.offers),
            requests=dict(self.requests),
            transitions=dict(self.transitions),
            last_offer_id=self.last_offer_id,
            last_request_id=self.last_request_id,
        )


class _MemoryView:
    """View over one ``_LedgerState``. Writable only inside a transaction."""

    def __init__(self, state: _LedgerState, writable: bool = False):
        self._state = state
        self._writable = writable

    def _check_writable(self):
        if not self._writable:
            raise ReadOnlyViewError("Snapshot views are read-only")

    # === Accounts ===

    def get_account(self, identity: str) -> Optional[Account]:
        account = self._state.accounts.get(identity)
        return replace(account) if account else None

    def list_accounts(self, skill: Optional[str] = None) -> List[Account]:
        accounts = sorted(self._state.accounts.values(), key=lambda a: a.identity)
        if skill is not None:
            tag = normalize_tag(skill)
            accounts = [a for a in accounts if tag in a.skills]
        return [replace(a) for a in accounts]

    def total_balance(self) -> int:
        return sum(a.balance for a in self._state.accounts.values())

    def save_account(self, account: Account) -> None:
        self._check_writable()
        self._state.accounts[account.identity] = replace(account)

    # === Offers ===

    def get_offer(self, offer_id: int) -> Optional[Offer]:
        offer = self._state.offers.get(offer_id)
        return replace(offer) if offer else None

    def list_offers(
        self,
        provider: Optional[str] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Offer]:
        offers = [self._state.offers[k] for k in sorted(self._state.offers)]

        if provider is not None:
            offers = [o for o in offers if o.provider == provider]
        if category is not None:
            tag = normalize_tag(category)
            offers = [o for o in offers if o.category == tag]
        if active is not None:
            offers = [o for o in offers if o.active == active]

        return [replace(o) for o in offers[offset : offset + limit]]

    def next_offer_id(self) -> int:
        self._check_writable()
        self._state.last_offer_id += 1
        return self._state.last_offer_id

    def save_offer(self, offer: Offer) -> None:
        self._check_writable()
        self._state.offers[offer.id] = replace(offer)

    # === Requests ===

    def get_request(self, request_id: int) -> Optional[ServiceRequest]:
        request = self._state.requests.get(request_id)
        return replace(request) if request else None

    def list_requests(
        self,
        requester: Optional[str] = None,
        provider: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ServiceRequest]:
        requests = [self._state.requests[k] for k in sorted(self._state.requests)]

        if requester is not None:
            requests = [r for r in requests if r.requester == requester]
        if provider is not None:
            requests = [r for r in requests if r.provider == provider]
        if status is not None:
            wanted = RequestStatus(status)
            requests = [r for r in requests if r.status == wanted]

        return [replace(r) for r in requests[offset : offset + limit]]

    def next_request_id(self) -> int:
        self._check_writable()
        self._state.last_request_id += 1
        return self._state.last_request_id

    def save_request(self, request: ServiceRequest) -> None:
        self._check_writable()
        self._state.requests[request.id] = replace(request)

    # === Transitions ===

    def get_transitions(self, request_id: int) -> List[RequestStateTransition]:
        return list(self._state.transitions.get(request_id, ()))

    def save_transition(self, transition: RequestStateTransition) -> None:
        self._check_writable()
        existing = self._state.transitions.get(transition.request_id, ())
        self._state.transitions[transition.request_id] = existing + (transition,)


class InMemoryLedgerStorage:
    """Ledger storage held entirely in process memory."""

    def __init__(self):
        self._state = _LedgerState()
        self._write_lock = threading.Lock()

    @contextmanager
    def snapshot(self) -> Iterator[_MemoryView]:
        """Open a read-only view of the most recently committed state."""
        yield _MemoryView(self._state)

    @contextmanager
    def transaction(self) -> Iterator[_MemoryView]:
        """Run a unit of work against a private copy and publish it on success."""
        with self._write_lock:
            working = self._state.copy()
            try:
                yield _MemoryView(working, writable=True)
            except Exception as e:
                logger.debug(f"Transaction failed, discarding changes: {e}")
                raise
            self._state = working

    def close(self) -> None:
        """No resources to release; exists for API compatibility."""
        pass
