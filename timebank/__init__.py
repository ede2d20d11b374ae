"""
timebank - Peer-to-peer time-credit exchange ledger.

Members register, advertise services priced in time-credits (1 credit = 1
minute), request each other's services, and settle completed work by moving
credits from requester to provider.
"""

from .config import LedgerConfig
from .engine import ExchangeEngine
from .errors import (
    AccountNotFoundError,
    AlreadyRegisteredError,
    InsufficientBalanceError,
    InvalidInputError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
    OfferInactiveError,
    OfferNotFoundError,
    RequestNotFoundError,
    SelfRequestError,
    UnauthorizedError,
)
from .models import Account, Offer, RequestStatus, ServiceRequest

try:
    from importlib.metadata import version

    __version__ = version("timebank")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "ExchangeEngine",
    "LedgerConfig",
    # Models
    "Account",
    "Offer",
    "ServiceRequest",
    "RequestStatus",
    # Errors
    "LedgerError",
    "InvalidInputError",
    "AlreadyRegisteredError",
    "NotFoundError",
    "AccountNotFoundError",
    "OfferNotFoundError",
    "RequestNotFoundError",
    "UnauthorizedError",
    "OfferInactiveError",
    "SelfRequestError",
    "InsufficientBalanceError",
    "InvalidStateError",
]
