"""Caller identity for the timebank backend.

Authentication happens upstream: a trusted proxy verifies the caller and
forwards the verified identity in a header (``X-Caller-Identity`` by
default). This module only reads it.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .config import Settings, get_settings

MAX_IDENTITY_LENGTH = 128


async def get_caller_identity(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> str:
    """Get the verified caller identity from the configured header."""
    identity = request.headers.get(settings.identity_header, "").strip()
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Not authenticated - missing {settings.identity_header} header",
        )
    if len(identity) > MAX_IDENTITY_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Caller identity too long",
        )
    return identity


# Type alias for dependency injection
CallerIdentity = Annotated[str, Depends(get_caller_identity)]
