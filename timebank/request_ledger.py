"""Request ledger.

Tracks service requests and their lifecycle:

    pending --[settled by provider]--> completed

The balance check made at creation is advisory. The binding check is the
debit performed at settlement, so two requests that each pass here may not
both be payable later; the second settlement then fails with
``InsufficientBalanceError``.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from timebank.accounts import AccountStore
from timebank.config import LedgerConfig
from timebank.errors import (
    InsufficientBalanceError,
    InvalidStateError,
    OfferInactiveError,
    RequestNotFoundError,
    SelfRequestError,
)
from timebank.models import (
    RequestStateTransition,
    RequestStatus,
    ServiceRequest,
    utc_now,
)
from timebank.offers import OfferCatalog
from timebank.storage.base import LedgerView

logger = logging.getLogger(__name__)


class RequestLedger:
    """Service request operations over one ledger view."""

    def __init__(self, view: LedgerView, config: LedgerConfig):
        self.view = view
        self.config = config
        self.accounts = AccountStore(view, config)
        self.offers = OfferCatalog(view, config)

    def create_request(
        self, requester: str, offer_id: int, now: Optional[datetime] = None
    ) -> ServiceRequest:
        """Create a pending request against an active offer.

        Raises:
            AccountNotFoundError: If the requester is not registered
            OfferNotFoundError: If the offer does not exist
            OfferInactiveError: If the offer has been deactivated
            SelfRequestError: If the requester provides the offer
            InsufficientBalanceError: If the requester cannot currently afford it
        """
        account = self.accounts.get_account(requester)
        offer = self.offers.get_offer(offer_id)
        if not offer.active:
            raise OfferInactiveError(offer_id)
        if offer.provider == requester:
            raise SelfRequestError(offer_id)
        if account.balance < offer.time_cost:
            raise InsufficientBalanceError(requester, account.balance, offer.time_cost)

        now = now or utc_now()
        request = ServiceRequest(
            id=self.view.next_request_id(),
            requester=requester,
            provider=offer.provider,
            offer_id=offer.id,
            status=RequestStatus.PENDING,
            created_at=now,
        )
        self.view.save_request(request)
        self._record_transition(request.id, None, RequestStatus.PENDING, requester, now)
        return request

    def get_request(self, request_id: int) -> ServiceRequest:
        """Get a request by ID.

        Raises:
            RequestNotFoundError: If no request has this id
        """
        request = self.view.get_request(request_id)
        if request is None:
            raise RequestNotFoundError(request_id)
        return request

    def mark_completed(
        self, request: ServiceRequest, actor: str, now: Optional[datetime] = None
    ) -> ServiceRequest:
        """Move a request from pending to completed and log the transition.

        Raises:
            InvalidStateError: If the request is not pending
        """
        if not request.can_transition_to(RequestStatus.COMPLETED):
            raise InvalidStateError(
                request.id, request.status.value, RequestStatus.COMPLETED.value
            )

        now = now or utc_now()
        updated = replace(request, status=RequestStatus.COMPLETED, completed_at=now)
        self.view.save_request(updated)
        self._record_transition(
            request.id, request.status, RequestStatus.COMPLETED, actor, now
        )
        return updated

    def list_requests(
        self,
        requester: Optional[str] = None,
        provider: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ServiceRequest]:
        return self.view.list_requests(
            requester=requester, provider=provider, status=status, limit=limit, offset=offset
        )

    def get_transitions(self, request_id: int) -> List[RequestStateTransition]:
        """Get the audit trail for a request, oldest first.

        Raises:
            RequestNotFoundError: If no request has this id
        """
        self.get_request(request_id)
        return self.view.get_transitions(request_id)

    def _record_transition(
        self,
        request_id: int,
        from_status: Optional[RequestStatus],
        to_status: RequestStatus,
        actor: str,
        now: datetime,
    ) -> None:
        self.view.save_transition(
            RequestStateTransition(
                request_id=request_id,
                from_status=from_status,
                to_status=to_status,
                actor=actor,
                created_at=now,
            )
        )
