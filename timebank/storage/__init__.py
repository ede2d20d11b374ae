"""Storage backends for the exchange ledger."""

from timebank.storage.base import LedgerStorage, LedgerUnit, LedgerView, ReadOnlyViewError
from timebank.storage.memory import InMemoryLedgerStorage
from timebank.storage.sqlite import SQLiteLedgerStorage

__all__ = [
    "LedgerStorage",
    "LedgerView",
    "LedgerUnit",
    "ReadOnlyViewError",
    "InMemoryLedgerStorage",
    "SQLiteLedgerStorage",
]
