"""Offer catalog.

Providers advertise services at a fixed time-credit cost. Offers are never
deleted: the only mutation is flipping ``active`` off, which stops new
requests but leaves existing ones completable.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from timebank.accounts import AccountStore
from timebank.config import LedgerConfig
from timebank.errors import OfferNotFoundError, UnauthorizedError
from timebank.models import Offer, utc_now
from timebank.storage.base import LedgerView
from timebank.validation import require_positive_int, require_text

logger = logging.getLogger(__name__)


class OfferCatalog:
    """Offer operations over one ledger view."""

    def __init__(self, view: LedgerView, config: LedgerConfig):
        self.view = view
        self.config = config
        self.accounts = AccountStore(view, config)

    def create_offer(
        self,
        provider: str,
        category: str,
        description: str,
        time_required: int,
        time_cost: int,
        now: Optional[datetime] = None,
    ) -> Offer:
        """Create an active offer owned by ``provider``.

        Raises:
            AccountNotFoundError: If the provider is not registered
            InvalidInputError: If text is empty or a time value is not positive
        """
        self.accounts.get_account(provider)
        category = require_text(category, "Category", self.config.max_category_length)
        description = require_text(
            description, "Description", self.config.max_description_length
        )
        time_required = require_positive_int(time_required, "Time required")
        time_cost = require_positive_int(time_cost, "Time cost")

        offer = Offer(
            id=self.view.next_offer_id(),
            provider=provider,
            category=category,
            description=description,
            time_required=time_required,
            time_cost=time_cost,
            active=True,
            created_at=now or utc_now(),
        )
        self.view.save_offer(offer)
        return offer

    def get_offer(self, offer_id: int) -> Offer:
        """Get an offer by ID.

        Raises:
            OfferNotFoundError: If no offer has this id
        """
        offer = self.view.get_offer(offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        return offer

    def deactivate(self, offer_id: int, caller: str) -> Tuple[Offer, bool]:
        """Deactivate an offer on behalf of its provider.

        Deactivating an inactive offer is a no-op.

        Returns:
            Tuple of (offer, changed) where ``changed`` is False for the no-op case.

        Raises:
            OfferNotFoundError: If the offer does not exist
            UnauthorizedError: If ``caller`` is not the offer's provider
        """
        offer = self.get_offer(offer_id)
        if caller != offer.provider:
            raise UnauthorizedError(f"Only the provider can deactivate offer {offer_id}")
        if not offer.active:
            return offer, False

        updated = replace(offer, active=False)
        self.view.save_offer(updated)
        return updated, True

    def list_offers(
        self,
        provider: Optional[str] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Offer]:
        return self.view.list_offers(
            provider=provider, category=category, active=active, limit=limit, offset=offset
        )
