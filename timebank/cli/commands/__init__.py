"""CLI command handlers."""

from timebank.cli.commands.accounts import (
    cmd_account,
    cmd_balance,
    cmd_register,
    cmd_reputation,
    cmd_supply,
)
from timebank.cli.commands.offers import cmd_offer
from timebank.cli.commands.requests import cmd_request

__all__ = [
    "cmd_register",
    "cmd_balance",
    "cmd_reputation",
    "cmd_account",
    "cmd_supply",
    "cmd_offer",
    "cmd_request",
]
