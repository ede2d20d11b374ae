"""Timebank Backend API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from timebank import LedgerError

from .config import get_settings
from .database import Ledger, close_ledger_engine
from .errors import ledger_error_handler
from .logging_config import get_logger, setup_logging
from .rate_limit import limiter
from .routes import accounts_router, offers_router, requests_router

API_PREFIX = "/api/v1"

settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger("timebank.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting Timebank API (debug={settings.debug})")
    yield
    close_ledger_engine()
    logger.info("Shutting down Timebank API")


app = FastAPI(
    title="Timebank API",
    description="Peer-to-peer time-credit exchange ledger",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Ledger errors -> {"detail", "code"}
app.add_exception_handler(LedgerError, ledger_error_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(accounts_router, prefix=API_PREFIX)
app.include_router(offers_router, prefix=API_PREFIX)
app.include_router(requests_router, prefix=API_PREFIX)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": "timebank-backend",
        "version": "0.1.0",
        "status": "ok",
    }


@app.get("/health")
def health(engine: Ledger):
    """Detailed health check that reads the ledger."""
    try:
        supply = engine.total_credits()
        ledger_status = "connected"
    except Exception as e:
        logger.exception("Health check failed to read the ledger")
        supply = None
        ledger_status = f"error: {str(e)[:50]}"

    return {
        "status": "healthy" if ledger_status == "connected" else "degraded",
        "ledger": ledger_status,
        "total_credits": supply,
    }
