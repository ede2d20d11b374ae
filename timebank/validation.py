"""Argument validation shared by the ledger stores."""

import re
from typing import Any

from timebank.errors import InvalidInputError

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def require_text(value: Any, field_name: str, max_length: int) -> str:
    """Return ``value`` stripped, rejecting non-strings, blanks and overlong text."""
    if not isinstance(value, str):
        raise InvalidInputError(f"{field_name} must be a string")
    cleaned = _CONTROL_CHARS.sub("", value).strip()
    if not cleaned:
        raise InvalidInputError(f"{field_name} cannot be empty")
    if len(cleaned) > max_length:
        raise InvalidInputError(f"{field_name} too long (max {max_length} characters)")
    return cleaned


def require_positive_int(value: Any, field_name: str) -> int:
    """Return ``value`` if it is an integer greater than zero."""
    # bool is an int subclass; True must not pass as 1 credit
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{field_name} must be an integer")
    if value <= 0:
        raise InvalidInputError(f"{field_name} must be positive")
    return value


def require_identity(value: Any, max_length: int) -> str:
    """Return ``value`` unchanged if it is usable as an account identity.

    Identities are stored exactly as given, so anything that cleaning would
    alter (surrounding whitespace, control characters) is rejected.
    """
    cleaned = require_text(value, "Identity", max_length)
    if cleaned != value:
        raise InvalidInputError(
            "Identity cannot contain control characters or surrounding whitespace"
        )
    return value
