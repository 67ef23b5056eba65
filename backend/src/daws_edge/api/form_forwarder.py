"""Form forwarder: email website form submissions to routed recipients.

Request body::

    {"form_kind": "speaker", "submission": {"name": "...", "email": "...", ...}}

``formKind`` is accepted as an alias of ``form_kind``. Recipients come from
the routing table row for the form kind; the email is sent through Resend.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping

from daws_edge.api.request import HandlerResult
from daws_edge.api.request import RequestContext
from daws_edge.api.request import handle_request
from daws_edge.api.schemas import FormForwardRequest
from daws_edge.api.schemas import FormKind
from daws_edge.api.schemas import parse_request
from daws_edge.config import FormForwarderSettings
from daws_edge.exceptions import ConfigurationError
from daws_edge.exceptions import ValidationError
from daws_edge.services.http_client import Transport
from daws_edge.services.http_client import urllib_transport
from daws_edge.services.resend import OutboundEmail
from daws_edge.services.resend import ResendClient
from daws_edge.services.routing import load_routing_rule
from daws_edge.services.routing import resolve_recipients
from daws_edge.templates import build_form_submission_email
from daws_edge.utils.logging import configure_logging
from daws_edge.utils.logging import get_logger
from daws_edge.utils.validators import normalize_email

# Configure logging on module load
configure_logging()
logger = get_logger(__name__)

http_transport: Transport = urllib_transport

INVALID_FORM_KIND = "form_kind must be one of: {kinds}.".format(
    kinds=", ".join(kind.value for kind in FormKind)
)
UNKNOWN_SENDER = "Unknown sender"


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle form forwarding requests."""
    settings = FormForwarderSettings.from_env()
    return handle_request(
        event,
        context,
        settings.endpoint,
        lambda request: forward_submission(request, settings),
    )


def _pick_sender_email(submission: Mapping[str, Any]) -> str:
    return normalize_email(submission.get("email"))


def _pick_sender_name(submission: Mapping[str, Any]) -> str:
    value = submission.get("name")
    return str(value).strip() if value is not None else ""


def _is_honeypot_filled(submission: Mapping[str, Any], field: str) -> bool:
    if not field:
        return False
    value = submission.get(field)
    return value is not None and bool(str(value).strip())


def forward_submission(
    request: RequestContext,
    settings: FormForwarderSettings,
) -> HandlerResult:
    """Route and email one submission."""
    body = parse_request(FormForwardRequest, request.payload)
    form_kind = FormKind.parse(body.requested_kind)
    if form_kind is None:
        raise ValidationError(INVALID_FORM_KIND, field="form_kind")

    submission = body.submission or {}
    if _is_honeypot_filled(submission, settings.honeypot_field):
        logger.info(
            "Honeypot field filled, discarding submission",
            extra={"context": {"form_kind": form_kind.value}},
        )
        return HandlerResult(200, {"ok": True, "message": "Submission received."})

    rule = load_routing_rule(form_kind, settings.routing_table)
    decision = resolve_recipients(rule, form_kind, settings.default_cc)
    if decision.skipped:
        logger.info(
            f"Submission skipped: {decision.skip_reason}",
            extra={"context": {"form_kind": form_kind.value}},
        )
        return HandlerResult(
            200, {"ok": True, "skipped": True, "message": decision.skip_reason}
        )

    if not settings.resend_api_key:
        raise ConfigurationError("RESEND_API_KEY is not configured.", "RESEND_API_KEY")

    recipients = decision.recipients
    sender_email = _pick_sender_email(submission)
    sender = _pick_sender_name(submission) or sender_email or UNKNOWN_SENDER
    content = build_form_submission_email(
        brand=settings.brand,
        form_label=recipients.form_label,
        sender=sender,
        submission=submission,
    )

    client = ResendClient(
        settings.resend_api_key,
        settings.resend_api_url,
        settings.timeout_ms / 1000,
        transport=http_transport,
    )
    message_id = client.send_email(
        OutboundEmail(
            sender=settings.from_email,
            to=recipients.to,
            cc=recipients.cc,
            reply_to=sender_email or None,
            content=content,
        ),
        request.deadline,
    )

    logger.info(
        "Form submission forwarded",
        extra={
            "context": {
                "form_kind": form_kind.value,
                "to_count": len(recipients.to),
                "cc_count": len(recipients.cc),
            }
        },
    )
    result: dict[str, Any] = {
        "ok": True,
        "message": "Email forwarded successfully.",
        "provider": "resend",
    }
    if message_id:
        result["id"] = message_id
    return HandlerResult(200, result)
