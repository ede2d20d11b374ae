"""Exchange engine.

The public face of the ledger. Every mutating operation runs in one storage
transaction: validation and mutation happen against the same serialized view,
and any error rolls the whole unit back. Events are emitted only after
commit.

Settlement (``complete_request``) is the critical path:

1. request must exist                  -> RequestNotFoundError
2. caller must be the request provider -> UnauthorizedError
3. request must be pending             -> InvalidStateError
4. offer must still exist              -> OfferNotFoundError
5. debit requester, credit provider, mark completed, bump reputation,
   all in the same transaction          -> InsufficientBalanceError rolls back
6. emit ``request.completed``
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from timebank.accounts import AccountStore
from timebank.config import LedgerConfig
from timebank.errors import InsufficientBalanceError, InvalidStateError, UnauthorizedError
from timebank.events import EventDispatcher, EventSink, LedgerEvent, LedgerEventType
from timebank.models import (
    Account,
    Offer,
    RequestStateTransition,
    RequestStatus,
    ServiceRequest,
    utc_now,
)
from timebank.offers import OfferCatalog
from timebank.request_ledger import RequestLedger
from timebank.storage.base import LedgerStorage
from timebank.storage.memory import InMemoryLedgerStorage
from timebank.storage.sqlite import SQLiteLedgerStorage

logger = logging.getLogger(__name__)


class ExchangeEngine:
    """Orchestrates registration, offers, requests and settlement."""

    def __init__(
        self,
        storage: LedgerStorage,
        config: Optional[LedgerConfig] = None,
        sinks: Iterable[EventSink] = (),
    ):
        self.storage = storage
        self.config = config or LedgerConfig()
        self.events = EventDispatcher(sinks)

    @classmethod
    def in_memory(
        cls, config: Optional[LedgerConfig] = None, sinks: Iterable[EventSink] = ()
    ) -> "ExchangeEngine":
        """Create an engine over a fresh in-memory ledger."""
        return cls(InMemoryLedgerStorage(), config=config, sinks=sinks)

    @classmethod
    def sqlite(
        cls,
        db_path: Optional[Path] = None,
        config: Optional[LedgerConfig] = None,
        sinks: Iterable[EventSink] = (),
    ) -> "ExchangeEngine":
        """Create an engine over a SQLite ledger file (``config.db_path`` by default)."""
        config = config or LedgerConfig()
        return cls(SQLiteLedgerStorage(db_path or config.db_path), config=config, sinks=sinks)

    def close(self) -> None:
        self.storage.close()

    # === Mutations ===

    def register(self, identity: str, name: str, skills: Iterable[str] = ()) -> Account:
        """Register ``identity`` with the initial credit grant."""
        with self.storage.transaction() as unit:
            account = AccountStore(unit, self.config).register(identity, name, skills)

        logger.info(f"Registered {account.identity} with {account.balance} credits")
        self._emit(
            LedgerEventType.ACCOUNT_REGISTERED,
            actor=account.identity,
            identity=account.identity,
            payload={
                "name": account.name,
                "skills": account.skills,
                "balance": account.balance,
            },
        )
        return account

    def create_offer(
        self,
        identity: str,
        category: str,
        description: str,
        time_required: int,
        time_cost: int,
    ) -> Offer:
        """Create an offer provided by ``identity``."""
        with self.storage.transaction() as unit:
            offer = OfferCatalog(unit, self.config).create_offer(
                identity, category, description, time_required, time_cost
            )

        logger.info(
            f"Offer {offer.id} created by {identity} ({offer.category}, {offer.time_cost} credits)"
        )
        self._emit(
            LedgerEventType.OFFER_CREATED,
            actor=identity,
            identity=identity,
            offer_id=offer.id,
            payload={
                "category": offer.category,
                "time_required": offer.time_required,
                "time_cost": offer.time_cost,
            },
        )
        return offer

    def deactivate_offer(self, identity: str, offer_id: int) -> Offer:
        """Deactivate an offer. Only its provider may do this; repeats are no-ops."""
        with self.storage.transaction() as unit:
            offer, changed = OfferCatalog(unit, self.config).deactivate(offer_id, identity)

        if changed:
            logger.info(f"Offer {offer_id} deactivated by {identity}")
            self._emit(
                LedgerEventType.OFFER_DEACTIVATED,
                actor=identity,
                identity=identity,
                offer_id=offer_id,
            )
        return offer

    def create_request(self, identity: str, offer_id: int) -> ServiceRequest:
        """Request offer ``offer_id`` on behalf of ``identity``."""
        with self.storage.transaction() as unit:
            request = RequestLedger(unit, self.config).create_request(identity, offer_id)

        logger.info(f"Request {request.id} created by {identity} for offer {offer_id}")
        self._emit(
            LedgerEventType.REQUEST_CREATED,
            actor=identity,
            identity=identity,
            offer_id=offer_id,
            request_id=request.id,
            payload={"provider": request.provider},
        )
        return request

    def complete_request(self, identity: str, request_id: int) -> ServiceRequest:
        """Settle a request: move credits to the provider and bump reputation."""
        try:
            with self.storage.transaction() as unit:
                requests = RequestLedger(unit, self.config)
                request = requests.get_request(request_id)
                if identity != request.provider:
                    raise UnauthorizedError(
                        f"Only the provider can complete request {request_id}"
                    )
                if not request.is_pending:
                    raise InvalidStateError(
                        request_id, request.status.value, RequestStatus.COMPLETED.value
                    )
                # Deactivated offers still settle; offers are never deleted
                offer = requests.offers.get_offer(request.offer_id)
                amount = offer.time_cost

                now = utc_now()
                requests.accounts.debit(request.requester, amount)
                requests.accounts.credit(request.provider, amount)
                completed = requests.mark_completed(request, identity, now)
                requests.accounts.bump_reputation(request.provider)
        except (InsufficientBalanceError, InvalidStateError) as e:
            logger.warning(f"Settlement of request {request_id} rejected: {e}")
            raise

        logger.info(
            f"Request {request_id} settled: {amount} credits "
            f"{completed.requester} -> {completed.provider}"
        )
        self._emit(
            LedgerEventType.REQUEST_COMPLETED,
            actor=identity,
            identity=completed.provider,
            offer_id=completed.offer_id,
            request_id=request_id,
            payload={
                "provider": completed.provider,
                "requester": completed.requester,
                "amount": amount,
            },
        )
        return completed

    # === Reads ===

    def get_account(self, identity: str) -> Account:
        with self.storage.snapshot() as view:
            return AccountStore(view, self.config).get_account(identity)

    def get_balance(self, identity: str) -> int:
        with self.storage.snapshot() as view:
            return AccountStore(view, self.config).get_balance(identity)

    def get_reputation(self, identity: str) -> int:
        with self.storage.snapshot() as view:
            return AccountStore(view, self.config).get_reputation(identity)

    def list_accounts(self, skill: Optional[str] = None) -> List[Account]:
        with self.storage.snapshot() as view:
            return AccountStore(view, self.config).list_accounts(skill=skill)

    def total_credits(self) -> int:
        """Sum of all balances. Changes only when accounts are registered."""
        with self.storage.snapshot() as view:
            return AccountStore(view, self.config).total_credits()

    def get_offer(self, offer_id: int) -> Offer:
        with self.storage.snapshot() as view:
            return OfferCatalog(view, self.config).get_offer(offer_id)

    def list_offers(
        self,
        provider: Optional[str] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Offer]:
        with self.storage.snapshot() as view:
            return OfferCatalog(view, self.config).list_offers(
                provider=provider, category=category, active=active, limit=limit, offset=offset
            )

    def get_request(self, request_id: int) -> ServiceRequest:
        with self.storage.snapshot() as view:
            return RequestLedger(view, self.config).get_request(request_id)

    def list_requests(
        self,
        requester: Optional[str] = None,
        provider: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ServiceRequest]:
        with self.storage.snapshot() as view:
            return RequestLedger(view, self.config).list_requests(
                requester=requester, provider=provider, status=status, limit=limit, offset=offset
            )

    def get_request_history(self, request_id: int) -> List[RequestStateTransition]:
        with self.storage.snapshot() as view:
            return RequestLedger(view, self.config).get_transitions(request_id)

    # === Helpers ===

    def _emit(self, event_type: LedgerEventType, actor: str, **fields) -> None:
        self.events.emit(LedgerEvent(event_type=event_type, actor=actor, **fields))
