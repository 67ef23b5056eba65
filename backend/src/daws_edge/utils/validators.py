"""Input validation utilities."""

from __future__ import annotations

import re
from typing import Any
from typing import Iterable
from typing import Optional

# local-part@domain.tld, no whitespace and a single @
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_LIST_SEPARATORS = re.compile(r"[\n,;]")


def is_valid_email(value: Optional[str]) -> bool:
    """Return True when value has the basic shape of an email address."""
    if not value:
        return False
    return bool(EMAIL_PATTERN.match(value))


def normalize_email(value: Any) -> str:
    """Trim and lowercase an email candidate.

    Returns:
        The normalized address, or an empty string when it is not a
        syntactically valid email.
    """
    if value is None:
        return ""
    candidate = str(value).strip().lower()
    return candidate if is_valid_email(candidate) else ""


def normalize_email_list(value: Any) -> list[str]:
    """Normalize a recipient list from a database column or config string.

    Accepts a sequence of addresses or a single string delimited by commas,
    semicolons or newlines. Entries are trimmed, lowercased, filtered to
    valid addresses and deduplicated keeping first-occurrence order.

    Args:
        value: List, tuple, delimited string or None.

    Returns:
        Ordered list of unique, valid addresses.
    """
    if isinstance(value, str):
        raw_values: Iterable[Any] = _LIST_SEPARATORS.split(value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        raw_values = value
    else:
        raw_values = ()

    result: list[str] = []
    for entry in raw_values:
        email = normalize_email("" if entry is None else entry)
        if email and email not in result:
            result.append(email)
    return result


def merge_email_lists(*lists: Iterable[str]) -> list[str]:
    """Concatenate normalized lists, dropping later duplicates."""
    merged: list[str] = []
    for emails in lists:
        for email in emails:
            if email not in merged:
                merged.append(email)
    return merged
