"""Newsletter sign-up: add an email address to the Mailchimp audience.

Every response body carries a ``status`` of ``synced``,
``already_subscribed`` or ``failed``.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping

from daws_edge.api.request import HandlerResult
from daws_edge.api.request import RequestContext
from daws_edge.api.request import handle_request
from daws_edge.api.schemas import NewsletterSyncRequest
from daws_edge.api.schemas import SyncOutcome
from daws_edge.api.schemas import parse_request
from daws_edge.config import NewsletterSettings
from daws_edge.exceptions import ConfigurationError
from daws_edge.exceptions import UpstreamError
from daws_edge.exceptions import ValidationError
from daws_edge.services.http_client import Transport
from daws_edge.services.http_client import urllib_transport
from daws_edge.services.mailchimp import MailchimpClient
from daws_edge.utils.logging import configure_logging
from daws_edge.utils.logging import get_logger
from daws_edge.utils.validators import normalize_email

# Configure logging on module load
configure_logging()
logger = get_logger(__name__)

http_transport: Transport = urllib_transport

NOT_CONFIGURED = (
    "Mailchimp sync is not configured. Set MAILCHIMP_API_KEY and "
    "MAILCHIMP_AUDIENCE_ID. MAILCHIMP_SERVER_PREFIX is optional if your API "
    "key includes the data-center suffix (for example -us21)."
)

FAILED_FIELDS = {"status": SyncOutcome.FAILED.value}


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle newsletter sign-up requests."""
    settings = NewsletterSettings.from_env()
    return handle_request(
        event,
        context,
        settings.endpoint,
        lambda request: sync_subscriber(request, settings),
        error_fields=FAILED_FIELDS,
    )


def sync_subscriber(
    request: RequestContext,
    settings: NewsletterSettings,
) -> HandlerResult:
    body = parse_request(NewsletterSyncRequest, request.payload)
    email = normalize_email(body.email)
    if not email:
        raise ValidationError("A valid email address is required.", field="email")

    if not settings.api_key or not settings.audience_id or not settings.data_center:
        raise ConfigurationError(NOT_CONFIGURED, "MAILCHIMP_API_KEY")

    client = MailchimpClient(
        settings.api_key,
        settings.data_center,
        settings.audience_id,
        settings.timeout_ms / 1000,
        transport=http_transport,
    )
    result = client.add_member(
        email,
        request.deadline,
        double_opt_in=settings.double_opt_in,
        tags=settings.default_tags,
    )
    if not result.ok:
        raise UpstreamError("Mailchimp", result.message or "", result.status_code)

    return HandlerResult(200, {"ok": True, "status": result.outcome.value})
