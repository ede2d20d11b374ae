"""Map ledger errors onto HTTP responses."""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from timebank.errors import (
    AlreadyRegisteredError,
    InsufficientBalanceError,
    InvalidInputError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
    OfferInactiveError,
    SelfRequestError,
    UnauthorizedError,
)

from .logging_config import get_logger

logger = get_logger("timebank.api.errors")

# Most specific first; NotFoundError covers accounts, offers and requests
ERROR_STATUS = [
    (InvalidInputError, 422),
    (AlreadyRegisteredError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
    (OfferInactiveError, status.HTTP_409_CONFLICT),
    (SelfRequestError, status.HTTP_409_CONFLICT),
    (InsufficientBalanceError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
]


def status_for(exc: LedgerError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Render a ledger error as ``{"detail": ..., "code": ...}``."""
    status_code = status_for(exc)
    logger.info(
        f"{request.method} {request.url.path} rejected | code={exc.code} | status={status_code}"
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": exc.code},
    )
