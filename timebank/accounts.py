"""Account store.

Holds per-identity balance, reputation, registration flag and skill tags.
Balances only change through settlement (``debit`` / ``credit``), which the
exchange engine performs inside a single transaction.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional

from timebank.config import LedgerConfig
from timebank.errors import (
    AccountNotFoundError,
    AlreadyRegisteredError,
    InsufficientBalanceError,
    InvalidInputError,
)
from timebank.models import Account, normalize_tags, utc_now
from timebank.storage.base import LedgerView
from timebank.validation import require_identity, require_positive_int, require_text

logger = logging.getLogger(__name__)


class AccountStore:
    """Account operations over one ledger view."""

    def __init__(self, view: LedgerView, config: LedgerConfig):
        self.view = view
        self.config = config

    def register(
        self,
        identity: str,
        name: str,
        skills: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> Account:
        """Create an account with the initial grant and neutral reputation.

        Raises:
            InvalidInputError: If identity or name is empty, or a limit is exceeded
            AlreadyRegisteredError: If the identity already has an account
        """
        identity = require_identity(identity, self.config.max_identity_length)
        name = require_text(name, "Name", self.config.max_name_length)
        tags = normalize_tags(skills)
        if len(tags) > self.config.max_skills:
            raise InvalidInputError(f"Too many skills (max {self.config.max_skills})")
        for tag in tags:
            if len(tag) > self.config.max_skill_length:
                raise InvalidInputError(
                    f"Skill {tag[:20]!r} too long "
                    f"(max {self.config.max_skill_length} characters)"
                )

        if self.view.get_account(identity) is not None:
            raise AlreadyRegisteredError(identity)

        account = Account(
            identity=identity,
            name=name,
            skills=tags,
            balance=self.config.initial_balance,
            reputation=self.config.initial_reputation,
            registered=True,
            created_at=now or utc_now(),
        )
        self.view.save_account(account)
        return account

    # === Reads ===

    def get_account(self, identity: str) -> Account:
        """Get an account. Unknown identities raise ``AccountNotFoundError``."""
        account = self.view.get_account(identity)
        if account is None or not account.registered:
            raise AccountNotFoundError(identity)
        return account

    def get_balance(self, identity: str) -> int:
        return self.get_account(identity).balance

    def get_reputation(self, identity: str) -> int:
        return self.get_account(identity).reputation

    def list_accounts(self, skill: Optional[str] = None) -> List[Account]:
        return self.view.list_accounts(skill=skill)

    def total_credits(self) -> int:
        """Sum of every balance in the ledger."""
        return self.view.total_balance()

    # === Settlement mutators ===

    def debit(self, identity: str, amount: int) -> Account:
        """Remove ``amount`` credits from an account.

        Raises:
            InsufficientBalanceError: If the balance cannot cover the amount
        """
        amount = require_positive_int(amount, "Amount")
        account = self.get_account(identity)
        if amount > account.balance:
            raise InsufficientBalanceError(identity, account.balance, amount)
        updated = replace(account, balance=account.balance - amount)
        self.view.save_account(updated)
        return updated

    def credit(self, identity: str, amount: int) -> Account:
        """Add ``amount`` credits to an account."""
        amount = require_positive_int(amount, "Amount")
        account = self.get_account(identity)
        updated = replace(account, balance=account.balance + amount)
        self.view.save_account(updated)
        return updated

    def bump_reputation(self, identity: str) -> Account:
        """Raise reputation by one step, capped at the configured maximum."""
        account = self.get_account(identity)
        new_score = min(
            account.reputation + self.config.reputation_step, self.config.max_reputation
        )
        if new_score <= account.reputation:
            return account
        updated = replace(account, reputation=new_score)
        self.view.save_account(updated)
        return updated
