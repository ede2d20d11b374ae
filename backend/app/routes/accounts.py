"""Account routes for the timebank API.

Registration, balances and reputation.
"""

from datetime import datetime

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field, field_validator

from timebank.models import Account

from ..auth import CallerIdentity
from ..database import Ledger
from ..logging_config import get_logger
from ..rate_limit import limiter, read_limit, write_limit

logger = get_logger("timebank.api.accounts")
router = APIRouter(prefix="/accounts", tags=["accounts"])


# =============================================================================
# Request/Response Models
# =============================================================================


class AccountRegister(BaseModel):
    """Request to register the caller."""

    name: str = Field(..., min_length=1, max_length=200)
    skills: list[str] = Field(default_factory=list)

    @field_validator("skills")
    @classmethod
    def drop_blank_skills(cls, v: list[str]) -> list[str]:
        return [s for s in v if s.strip()]


class AccountResponse(BaseModel):
    """Account details response."""

    identity: str
    name: str
    skills: list[str]
    balance: int
    reputation: int
    created_at: datetime | None = None


class AccountListResponse(BaseModel):
    accounts: list[AccountResponse]
    total: int


class BalanceResponse(BaseModel):
    identity: str
    balance: int


class ReputationResponse(BaseModel):
    identity: str
    reputation: int


def to_account_response(account: Account) -> AccountResponse:
    return AccountResponse(
        identity=account.identity,
        name=account.name,
        skills=account.skills,
        balance=account.balance,
        reputation=account.reputation,
        created_at=account.created_at,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(write_limit)
def register_account(
    request: Request,
    body: AccountRegister,
    caller: CallerIdentity,
    ledger: Ledger,
):
    """
    Register the caller.

    The new account starts with the initial credit grant and the default
    reputation. Registering twice is rejected.
    """
    logger.info(f"POST /accounts | caller={caller} | name={body.name[:50]}")
    account = ledger.register(caller, body.name, body.skills)
    return to_account_response(account)


@router.get("", response_model=AccountListResponse)
@limiter.limit(read_limit)
def list_accounts(
    request: Request,
    caller: CallerIdentity,
    ledger: Ledger,
    skill: str | None = Query(None, description="Only accounts with this skill"),
):
    """List registered accounts, optionally filtered by skill."""
    accounts = ledger.list_accounts(skill=skill)
    return AccountListResponse(
        accounts=[to_account_response(a) for a in accounts],
        total=len(accounts),
    )


@router.get("/me", response_model=AccountResponse)
@limiter.limit(read_limit)
def get_my_account(request: Request, caller: CallerIdentity, ledger: Ledger):
    """Get the caller's own account."""
    return to_account_response(ledger.get_account(caller))


@router.get("/{identity}", response_model=AccountResponse)
@limiter.limit(read_limit)
def get_account(request: Request, identity: str, caller: CallerIdentity, ledger: Ledger):
    return to_account_response(ledger.get_account(identity))


@router.get("/{identity}/balance", response_model=BalanceResponse)
@limiter.limit(read_limit)
def get_balance(request: Request, identity: str, caller: CallerIdentity, ledger: Ledger):
    return BalanceResponse(identity=identity, balance=ledger.get_balance(identity))


@router.get("/{identity}/reputation", response_model=ReputationResponse)
@limiter.limit(read_limit)
def get_reputation(request: Request, identity: str, caller: CallerIdentity, ledger: Ledger):
    return ReputationResponse(identity=identity, reputation=ledger.get_reputation(identity))
