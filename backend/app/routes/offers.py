"""Offer routes for the timebank API.

Endpoints for the service catalog.
"""

from datetime import datetime

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field

from timebank.models import Offer

from ..auth import CallerIdentity
from ..database import Ledger
from ..logging_config import get_logger
from ..rate_limit import limiter, read_limit, write_limit

logger = get_logger("timebank.api.offers")
router = APIRouter(prefix="/offers", tags=["offers"])


# =============================================================================
# Request/Response Models
# =============================================================================


class OfferCreate(BaseModel):
    """Request to advertise a service."""

    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    time_required: int = Field(..., gt=0, description="Minutes the service takes")
    time_cost: int = Field(..., gt=0, description="Price in time-credits")


class OfferResponse(BaseModel):
    """Offer details response."""

    id: int
    provider: str
    category: str
    description: str
    time_required: int
    time_cost: int
    active: bool
    created_at: datetime | None = None


class OfferListResponse(BaseModel):
    """Paginated list of offers."""

    offers: list[OfferResponse]
    total: int
    limit: int
    offset: int


def to_offer_response(offer: Offer) -> OfferResponse:
    return OfferResponse(**offer.to_dict())


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(write_limit)
def create_offer(
    request: Request,
    body: OfferCreate,
    caller: CallerIdentity,
    ledger: Ledger,
):
    """
    Create an offer provided by the caller.

    The caller must be registered. New offers are active.
    """
    logger.info(f"POST /offers | caller={caller} | category={body.category[:50]}")
    offer = ledger.create_offer(
        caller, body.category, body.description, body.time_required, body.time_cost
    )
    return to_offer_response(offer)


@router.get("", response_model=OfferListResponse)
@limiter.limit(read_limit)
def list_offers(
    request: Request,
    caller: CallerIdentity,
    ledger: Ledger,
    provider: str | None = Query(None),
    category: str | None = Query(None),
    active: bool | None = Query(None, description="Filter by active flag"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Browse the catalog."""
    offers = ledger.list_offers(
        provider=provider, category=category, active=active, limit=limit, offset=offset
    )
    return OfferListResponse(
        offers=[to_offer_response(o) for o in offers],
        total=len(offers),
        limit=limit,
        offset=offset,
    )


@router.get("/{offer_id}", response_model=OfferResponse)
@limiter.limit(read_limit)
def get_offer(request: Request, offer_id: int, caller: CallerIdentity, ledger: Ledger):
    return to_offer_response(ledger.get_offer(offer_id))


@router.post("/{offer_id}/deactivate", response_model=OfferResponse)
@limiter.limit(write_limit)
def deactivate_offer(request: Request, offer_id: int, caller: CallerIdentity, ledger: Ledger):
    """
    Stop accepting new requests for an offer.

    Only the provider may deactivate. Pending requests can still be settled.
    """
    logger.info(f"POST /offers/{offer_id}/deactivate | caller={caller}")
    return to_offer_response(ledger.deactivate_offer(caller, offer_id))
