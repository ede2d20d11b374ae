"""Ledger configuration.

Defaults match the exchange's published rules: every new account is granted
100 credits (minutes) and starts with a neutral reputation of 50 on a 0-100
scale. Values can be overridden from ``TIMEBANK_*`` environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".timebank" / "ledger.db"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


@dataclass
class LedgerConfig:
    """Tunable constants for the exchange ledger."""

    initial_balance: int = 100
    initial_reputation: int = 50
    min_reputation: int = 0
    max_reputation: int = 100
    reputation_step: int = 1

    # Input limits
    max_identity_length: int = 128
    max_name_length: int = 200
    max_skill_length: int = 50
    max_skills: int = 20
    max_category_length: int = 100
    max_description_length: int = 2000

    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)

    def __post_init__(self):
        if self.initial_balance < 0:
            raise ValueError("initial_balance must be non-negative")
        if not 0 <= self.min_reputation <= self.max_reputation <= 100:
            raise ValueError("Reputation bounds must satisfy 0 <= min <= max <= 100")
        if not self.min_reputation <= self.initial_reputation <= self.max_reputation:
            raise ValueError(
                f"initial_reputation must be between {self.min_reputation} "
                f"and {self.max_reputation}"
            )
        if self.reputation_step < 0:
            raise ValueError("reputation_step must be non-negative")
        self.db_path = Path(self.db_path).expanduser()

    @classmethod
    def from_env(cls, db_path: Optional[Path] = None) -> "LedgerConfig":
        """Build a config from ``TIMEBANK_*`` environment variables."""
        defaults = cls()
        env_path = os.environ.get("TIMEBANK_DB_PATH", "").strip()
        return cls(
            initial_balance=_env_int("TIMEBANK_INITIAL_BALANCE", defaults.initial_balance),
            initial_reputation=_env_int(
                "TIMEBANK_INITIAL_REPUTATION", defaults.initial_reputation
            ),
            max_reputation=_env_int("TIMEBANK_MAX_REPUTATION", defaults.max_reputation),
            db_path=db_path or (Path(env_path) if env_path else defaults.db_path),
        )
