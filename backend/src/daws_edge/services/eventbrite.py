"""Eventbrite API client: paginated organization listing and event upserts."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any
from typing import Optional
from urllib.parse import quote
from urllib.parse import urlencode
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import ValidationError as PydanticValidationError

from daws_edge.api.schemas import EventPayload
from daws_edge.exceptions import PaginationOverflowError
from daws_edge.exceptions import UpstreamError
from daws_edge.exceptions import ValidationError
from daws_edge.services.http_client import Deadline
from daws_edge.services.http_client import HttpResponse
from daws_edge.services.http_client import ProviderMessages
from daws_edge.services.http_client import Transport
from daws_edge.services.http_client import send
from daws_edge.services.http_client import urllib_transport
from daws_edge.templates.event_description import build_event_description_html
from daws_edge.utils.logging import get_logger
from daws_edge.utils.parsers import to_positive_int
from daws_edge.utils.parsers import to_utc_timestamp

logger = get_logger(__name__)

EVENTBRITE = ProviderMessages(
    name="Eventbrite",
    timeout="Eventbrite request timed out.",
    unavailable="Unable to reach Eventbrite API.",
)


class EventbriteErrorEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error_description: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class SyncedEvent:
    id: Optional[str]
    url: Optional[str]

    def to_dict(self) -> dict[str, Optional[str]]:
        return {"id": self.id, "url": self.url}


def _json_object(raw_body: str) -> dict[str, Any]:
    if not raw_body:
        return {}
    try:
        data = json.loads(raw_body)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def error_message(response: HttpResponse) -> str:
    """Describe a non-success response as ``Eventbrite API error: ...``."""
    try:
        envelope = EventbriteErrorEnvelope.model_validate(_json_object(response.body))
    except PydanticValidationError:
        envelope = EventbriteErrorEnvelope()
    description = (
        _clean(envelope.error_description)
        or _clean(envelope.error)
        or response.reason
        or f"HTTP {response.status}"
    )
    return f"Eventbrite API error: {description}"


def dedupe_events(events: list[Any]) -> list[dict[str, Any]]:
    """Drop rows without an id and repeated ids; the first occurrence wins."""
    seen: set[str] = set()
    unique: list[dict[str, Any]] = []
    for event in events:
        if not isinstance(event, dict):
            continue
        event_id = _clean(event.get("id"))
        if not event_id or event_id in seen:
            continue
        seen.add(event_id)
        unique.append(event)
    return unique


def build_event_form(
    event: EventPayload,
    default_timezone: str,
    currency: str,
) -> dict[str, str]:
    """Build the form-encoded Eventbrite event fields.

    Timestamps are converted to UTC. A timestamp without an offset is read
    in the event's timezone.

    Raises:
        ValidationError: Missing title or timestamps, or an unknown timezone.
    """
    timezone_name = _clean(event.timezone) or default_timezone
    try:
        zone = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(
            f"Unknown timezone: {timezone_name}", field="event.timezone"
        ) from exc

    title = _clean(event.title)
    start_utc = to_utc_timestamp(event.start_at, zone)
    end_utc = to_utc_timestamp(event.end_at, zone)
    if not title or not start_utc or not end_utc:
        raise ValidationError("Event title, startAt, and endAt are required.", field="event")

    description_html = build_event_description_html(
        event.description, event.location_name, event.talks
    )

    return {
        "event.name.html": title,
        "event.description.html": description_html or title,
        "event.start.utc": start_utc,
        "event.start.timezone": timezone_name,
        "event.end.utc": end_utc,
        "event.end.timezone": timezone_name,
        "event.currency": currency,
        "event.online_event": "true",
        "event.listed": "true",
    }


class EventbriteClient:
    """Thin Eventbrite v3 client bound to one private token."""

    def __init__(
        self,
        token: str,
        api_base: str,
        timeout_seconds: float,
        page_size: int = 50,
        max_pages: int = 20,
        transport: Transport = urllib_transport,
    ) -> None:
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self.page_size = page_size
        self.max_pages = max_pages
        self._transport = transport

    def _request(
        self,
        method: str,
        url: str,
        deadline: Deadline,
        form: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._token}"}
        body = None
        if form is not None:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            body = urlencode(form).encode("utf-8")

        response = send(
            self._transport,
            method,
            url,
            deadline=deadline,
            timeout_seconds=self._timeout_seconds,
            provider=EVENTBRITE,
            headers=headers,
            body=body,
        )
        if not response.ok:
            message = error_message(response)
            logger.warning(
                "Eventbrite request failed",
                extra={"context": {"status": response.status, "error": message}},
            )
            raise UpstreamError("Eventbrite", message, response.status)
        return _json_object(response.body)

    def list_organization_events(
        self,
        organization_id: str,
        deadline: Deadline,
    ) -> list[dict[str, Any]]:
        """Fetch every event of an organization, newest first.

        Pages are fetched one at a time until Eventbrite reports no more
        items or the reported page count is reached.

        Raises:
            PaginationOverflowError: More than ``max_pages`` pages.
            UpstreamError: A page request failed.
        """
        events: list[Any] = []
        base_url = f"{self._api_base}/organizations/{quote(organization_id, safe='')}/events/"

        for page in range(1, self.max_pages + 1):
            params = urlencode(
                {
                    "order_by": "start_desc",
                    "expand": "venue,ticket_classes",
                    "page": page,
                    "page_size": self.page_size,
                }
            )
            data = self._request("GET", f"{base_url}?{params}", deadline)

            page_events = data.get("events")
            if isinstance(page_events, list):
                events.extend(page_events)

            pagination = data.get("pagination")
            if not isinstance(pagination, dict):
                pagination = {}
            has_more = bool(pagination.get("has_more_items"))
            page_number = to_positive_int(pagination.get("page_number")) or page
            page_count = to_positive_int(pagination.get("page_count"))

            if not has_more or (page_count is not None and page_number >= page_count):
                unique = dedupe_events(events)
                logger.info(
                    "Eventbrite events listed",
                    extra={"context": {"pages": page, "events": len(unique)}},
                )
                return unique

        raise PaginationOverflowError("Eventbrite", self.max_pages, "events")

    def create_event(
        self,
        organization_id: str,
        form: dict[str, str],
        deadline: Deadline,
    ) -> SyncedEvent:
        url = f"{self._api_base}/organizations/{quote(organization_id, safe='')}/events/"
        return self._synced(self._request("POST", url, deadline, form=form))

    def update_event(
        self,
        event_id: str,
        form: dict[str, str],
        deadline: Deadline,
    ) -> SyncedEvent:
        url = f"{self._api_base}/events/{quote(event_id, safe='')}/"
        return self._synced(self._request("POST", url, deadline, form=form))

    @staticmethod
    def _synced(data: dict[str, Any]) -> SyncedEvent:
        return SyncedEvent(
            id=_clean(data.get("id")) or None,
            url=_clean(data.get("url")) or None,
        )
