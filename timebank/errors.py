"""Error taxonomy for the exchange ledger.

Every failure the ledger reports is a ``LedgerError``. Each class carries a
stable ``code`` so transports (CLI, HTTP) can map errors without string
matching. No ledger error is fatal; each one is scoped to the single call
that raised it, and the transaction it happened in is rolled back.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""

    code = "ledger_error"


class InvalidInputError(LedgerError, ValueError):
    """Raised for malformed, empty, or non-positive arguments."""

    code = "invalid_input"


class AlreadyRegisteredError(LedgerError):
    """Raised when an identity already has an account."""

    code = "already_registered"

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Identity {identity!r} is already registered")


class NotFoundError(LedgerError):
    """Raised when a referenced identity, offer, or request does not exist."""

    code = "not_found"


class AccountNotFoundError(NotFoundError):
    """Raised when an identity has no account."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Account {identity!r} not found")


class OfferNotFoundError(NotFoundError):
    """Raised when an offer id is unknown."""

    def __init__(self, offer_id: int):
        self.offer_id = offer_id
        super().__init__(f"Offer {offer_id} not found")


class RequestNotFoundError(NotFoundError):
    """Raised when a request id is unknown."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"Request {request_id} not found")


class UnauthorizedError(LedgerError):
    """Raised when the caller lacks the required relationship to an entity."""

    code = "unauthorized"


class OfferInactiveError(LedgerError):
    """Raised when requesting an offer that has been deactivated."""

    code = "offer_inactive"

    def __init__(self, offer_id: int):
        self.offer_id = offer_id
        super().__init__(f"Offer {offer_id} is not active")


class SelfRequestError(LedgerError):
    """Raised when a provider requests their own offer."""

    code = "self_request"

    def __init__(self, offer_id: int):
        self.offer_id = offer_id
        super().__init__(f"Cannot request your own offer {offer_id}")


class InsufficientBalanceError(LedgerError):
    """Raised when an account cannot cover a cost."""

    code = "insufficient_balance"

    def __init__(self, identity: str, balance: int, required: int):
        self.identity = identity
        self.balance = balance
        self.required = required
        super().__init__(
            f"Insufficient balance for {identity!r}: has {balance}, needs {required}"
        )


class InvalidStateError(LedgerError):
    """Raised when a request is not in the lifecycle state an operation needs."""

    code = "invalid_state"

    def __init__(self, request_id: int, status: str, target: Optional[str] = None):
        self.request_id = request_id
        self.status = status
        self.target = target
        if target:
            message = f"Request {request_id} cannot move from {status} to {target}"
        else:
            message = f"Request {request_id} is {status}"
        super().__init__(message)
