"""Event sync: list, create and update Eventbrite events.

Request body::

    {
        "action": "list" | "create" | "update",
        "organizationId": "...",        # optional, defaults from environment
        "eventbriteEventId": "...",     # update only
        "event": {...}                  # create / update only
    }

Listing is public. Create and update change the organization's public
event listing and require an allowed origin plus an admin bearer token.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping

from daws_edge.api.request import HandlerResult
from daws_edge.api.request import RequestContext
from daws_edge.api.request import handle_request
from daws_edge.api.request import require_allowed_origin
from daws_edge.api.schemas import EventAction
from daws_edge.api.schemas import EventSyncRequest
from daws_edge.api.schemas import parse_request
from daws_edge.auth import require_admin
from daws_edge.config import AdminAuthSettings
from daws_edge.config import EventSyncSettings
from daws_edge.exceptions import ConfigurationError
from daws_edge.exceptions import ValidationError
from daws_edge.services.eventbrite import EventbriteClient
from daws_edge.services.eventbrite import build_event_form
from daws_edge.services.http_client import Transport
from daws_edge.services.http_client import urllib_transport
from daws_edge.utils.logging import configure_logging
from daws_edge.utils.logging import get_logger

# Configure logging on module load
configure_logging()
logger = get_logger(__name__)

http_transport: Transport = urllib_transport

INVALID_ACTION = "Action must be one of: list, create, update."


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle Eventbrite sync requests."""
    settings = EventSyncSettings.from_env()
    admin_settings = AdminAuthSettings.from_env()
    return handle_request(
        event,
        context,
        settings.endpoint,
        lambda request: sync_events(request, settings, admin_settings),
        enforce_origin=False,
    )


def _parse_action(value: Any) -> EventAction:
    try:
        return EventAction((value or "").strip())
    except ValueError as exc:
        raise ValidationError(INVALID_ACTION, field="action") from exc


def sync_events(
    request: RequestContext,
    settings: EventSyncSettings,
    admin_settings: AdminAuthSettings,
) -> HandlerResult:
    body = parse_request(EventSyncRequest, request.payload)
    action = _parse_action(body.action)

    if not settings.private_token:
        raise ConfigurationError(
            "Eventbrite private token is not configured.", "EVENTBRITE_PRIVATE_TOKEN"
        )

    organization_id = (body.organization_id or "").strip() or settings.default_organization_id
    client = EventbriteClient(
        settings.private_token,
        settings.api_base,
        settings.timeout_ms / 1000,
        page_size=settings.page_size,
        max_pages=settings.max_pages,
        transport=http_transport,
    )

    if action is EventAction.LIST:
        if not organization_id:
            raise ValidationError(
                "Organization ID is required for list action.", field="organizationId"
            )
        events = client.list_organization_events(organization_id, request.deadline)
        return HandlerResult(200, {"ok": True, "events": events})

    require_allowed_origin(request.event, settings.endpoint)
    require_admin(request.event, admin_settings, deadline=request.deadline)

    if not organization_id:
        raise ValidationError(
            "Organization ID is required for create/update actions.",
            field="organizationId",
        )
    if body.event is None:
        raise ValidationError("Event payload is required.", field="event")

    form = build_event_form(body.event, settings.default_timezone, settings.currency)

    if action is EventAction.CREATE:
        synced = client.create_event(organization_id, form, request.deadline)
    else:
        event_id = (body.eventbrite_event_id or "").strip()
        if not event_id:
            raise ValidationError(
                "eventbriteEventId is required for update action.",
                field="eventbriteEventId",
            )
        synced = client.update_event(event_id, form, request.deadline)

    logger.info(
        f"Eventbrite event {action.value}d",
        extra={"context": {"event_id": synced.id}},
    )
    return HandlerResult(200, {"ok": True, "event": synced.to_dict()})
