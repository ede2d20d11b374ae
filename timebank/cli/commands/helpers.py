"""Shared helper functions for CLI commands."""

import argparse
import json
import os
from typing import Any, Optional


class CallerRequiredError(ValueError):
    """Raised when a command needs a caller identity and none was given."""


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    print(json.dumps(data, indent=2, default=str))


def resolve_identity(args: argparse.Namespace, explicit: Optional[str] = None) -> str:
    """Resolve the identity a command acts as or looks up.

    Order: positional argument > ``--as`` > ``TIMEBANK_IDENTITY``.
    """
    identity = explicit or getattr(args, "caller", None) or os.environ.get("TIMEBANK_IDENTITY")
    if not identity or not identity.strip():
        raise CallerRequiredError("No identity given. Pass --as IDENTITY or set TIMEBANK_IDENTITY")
    return identity.strip()


def positive_int(value: str) -> int:
    """argparse type for strictly positive integers."""
    try:
        ivalue = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected an integer, got '{value}'")
    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {ivalue}")
    return ivalue
