"""Shared parsing utilities for configuration and provider payloads."""

from __future__ import annotations

import math
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Optional
from zoneinfo import ZoneInfo


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse a "true"/"false" string, falling back to ``default``.

    Args:
        value: The raw string, or None.
        default: Value returned for missing or unrecognized input.
    """
    if not value:
        return default
    normalized = value.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return default


def parse_int_setting(value: Optional[str], default: int) -> int:
    """Parse a positive integer setting, falling back to ``default``."""
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def parse_csv(value: Optional[str]) -> tuple[str, ...]:
    """Split a comma separated string into trimmed, non-empty items."""
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def to_positive_int(value: Any) -> Optional[int]:
    """Coerce a provider-reported number or numeric string to a positive int.

    Returns:
        The truncated integer, or None when the value is missing, not
        numeric, not finite or not positive.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number) or number <= 0:
        return None
    return int(number)


def to_utc_timestamp(value: Optional[str], default_tz: Optional[ZoneInfo] = None) -> str:
    """Convert an ISO-8601 timestamp to ``YYYY-MM-DDTHH:MM:SSZ``.

    Handles both 'Z' suffix and '+00:00' offset notation. A timestamp without
    an offset is interpreted in ``default_tz`` (UTC when not given).

    Args:
        value: The ISO-8601 string, or None.
        default_tz: Zone applied to naive timestamps.

    Returns:
        The UTC timestamp string, or an empty string when the value is
        missing or unparseable.
    """
    if not value or not value.strip():
        return ""
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return ""
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz or timezone.utc)
    return parsed.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
