"""Lambda entrypoint for the Eventbrite event sync endpoint."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from daws_edge.api.event_sync import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to Eventbrite event sync handler."""
    return _handler(event, context)
