"""Lambda entrypoint for the newsletter sign-up endpoint."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from daws_edge.api.newsletter_sync import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to newsletter sign-up handler."""
    return _handler(event, context)
