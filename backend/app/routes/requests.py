"""Service request routes for the timebank API.

Requesting offers and settling completed work.
"""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field

from timebank.models import RequestStateTransition, RequestStatus, ServiceRequest

from ..auth import CallerIdentity
from ..database import Ledger
from ..logging_config import get_logger
from ..rate_limit import limiter, read_limit, write_limit

logger = get_logger("timebank.api.requests")
router = APIRouter(prefix="/requests", tags=["requests"])


# =============================================================================
# Request/Response Models
# =============================================================================

RequestStatusValue = Literal["pending", "completed", "cancelled"]


class RequestCreate(BaseModel):
    """Request to consume an offer."""

    offer_id: int = Field(..., gt=0)


class ServiceRequestResponse(BaseModel):
    """Service request details response."""

    id: int
    requester: str
    provider: str
    offer_id: int
    status: RequestStatusValue
    created_at: datetime | None = None
    completed_at: datetime | None = None


class ServiceRequestListResponse(BaseModel):
    """Paginated list of service requests."""

    requests: list[ServiceRequestResponse]
    total: int
    limit: int
    offset: int


class TransitionResponse(BaseModel):
    id: str
    request_id: int
    from_status: RequestStatusValue | None = None
    to_status: RequestStatusValue
    actor: str
    created_at: datetime | None = None


class RequestHistoryResponse(BaseModel):
    request_id: int
    transitions: list[TransitionResponse]


def to_request_response(service_request: ServiceRequest) -> ServiceRequestResponse:
    return ServiceRequestResponse(**service_request.to_dict())


def to_transition_response(transition: RequestStateTransition) -> TransitionResponse:
    return TransitionResponse(**transition.to_dict())


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=ServiceRequestResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(write_limit)
def create_request(
    request: Request,
    body: RequestCreate,
    caller: CallerIdentity,
    ledger: Ledger,
):
    """
    Request an active offer on behalf of the caller.

    The caller must hold at least the offer's cost. Credits only move when
    the provider completes the request.
    """
    logger.info(f"POST /requests | caller={caller} | offer={body.offer_id}")
    return to_request_response(ledger.create_request(caller, body.offer_id))


@router.get("", response_model=ServiceRequestListResponse)
@limiter.limit(read_limit)
def list_requests(
    request: Request,
    caller: CallerIdentity,
    ledger: Ledger,
    role: Literal["requester", "provider"] = Query("requester"),
    status_filter: RequestStatusValue | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """List the caller's requests, as requester or as provider."""
    filters = {"requester": caller} if role == "requester" else {"provider": caller}
    requests = ledger.list_requests(
        status=RequestStatus(status_filter) if status_filter else None,
        limit=limit,
        offset=offset,
        **filters,
    )
    return ServiceRequestListResponse(
        requests=[to_request_response(r) for r in requests],
        total=len(requests),
        limit=limit,
        offset=offset,
    )


@router.get("/{request_id}", response_model=ServiceRequestResponse)
@limiter.limit(read_limit)
def get_request(request: Request, request_id: int, caller: CallerIdentity, ledger: Ledger):
    return to_request_response(ledger.get_request(request_id))


@router.post("/{request_id}/complete", response_model=ServiceRequestResponse)
@limiter.limit(write_limit)
def complete_request(request: Request, request_id: int, caller: CallerIdentity, ledger: Ledger):
    """
    Settle a pending request.

    Only the provider may complete. The offer's cost moves from the requester
    to the provider and the provider's reputation goes up by one.
    """
    logger.info(f"POST /requests/{request_id}/complete | caller={caller}")
    completed = ledger.complete_request(caller, request_id)
    logger.info(f"Request completed | id={request_id} | provider={caller}")
    return to_request_response(completed)


@router.get("/{request_id}/history", response_model=RequestHistoryResponse)
@limiter.limit(read_limit)
def get_request_history(
    request: Request, request_id: int, caller: CallerIdentity, ledger: Ledger
):
    transitions = ledger.get_request_history(request_id)
    return RequestHistoryResponse(
        request_id=request_id,
        transitions=[to_transition_response(t) for t in transitions],
    )
