"""Configuration settings for the timebank backend."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TIMEBANK_",
        extra="ignore",  # Ignore extra env vars not in model
    )

    # Ledger
    database_path: Path | None = None  # None = in-memory ledger (lost on restart)
    initial_balance: int = 100
    initial_reputation: int = 50

    # Identity arrives pre-verified from the upstream auth proxy
    identity_header: str = "X-Caller-Identity"

    # App
    debug: bool = False
    log_level: str = "INFO"
    write_rate_limit: str = "30/minute"
    read_rate_limit: str = "120/minute"
    # CORS: Allowed origins for cross-origin requests
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
