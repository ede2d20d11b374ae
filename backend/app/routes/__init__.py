"""API routes."""

from .accounts import router as accounts_router
from .offers import router as offers_router
from .requests import router as requests_router

__all__ = [
    "accounts_router",
    "offers_router",
    "requests_router",
]
