"""Lambda entrypoint for the form forwarding endpoint."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from daws_edge.api.form_forwarder import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to form forwarding handler."""
    return _handler(event, context)
