"""Resend transactional email client."""

from __future__ import annotations

import json
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Optional
from typing import Sequence

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import ValidationError as PydanticValidationError

from daws_edge.exceptions import UpstreamError
from daws_edge.services.http_client import Deadline
from daws_edge.services.http_client import ProviderMessages
from daws_edge.services.http_client import Transport
from daws_edge.services.http_client import send
from daws_edge.services.http_client import urllib_transport
from daws_edge.templates.types import EmailContent
from daws_edge.utils.logging import get_logger

logger = get_logger(__name__)

RESEND = ProviderMessages(
    name="Resend",
    timeout="Form forwarding request timed out.",
    unavailable="Unable to reach email provider.",
)

FALLBACK_ERROR_MESSAGE = "Resend API request failed."


class ResendErrorEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: Optional[str] = None
    error: Optional[str] = None


class ResendSendEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None


def parse_error_message(raw_body: str) -> str:
    """Extract the caller-facing message from a Resend error body.

    ``message`` wins over ``error``; anything else, including a body that is
    not JSON or has unexpected types, yields the generic fallback.
    """
    if not raw_body:
        return FALLBACK_ERROR_MESSAGE
    try:
        envelope = ResendErrorEnvelope.model_validate_json(raw_body)
    except PydanticValidationError:
        return FALLBACK_ERROR_MESSAGE
    for candidate in (envelope.message, envelope.error):
        if candidate and candidate.strip():
            return candidate
    return FALLBACK_ERROR_MESSAGE


def parse_message_id(raw_body: str) -> Optional[str]:
    if not raw_body:
        return None
    try:
        envelope = ResendSendEnvelope.model_validate_json(raw_body)
    except PydanticValidationError:
        return None
    return (envelope.id or "").strip() or None


@dataclass(frozen=True)
class OutboundEmail:
    sender: str
    to: Sequence[str]
    content: EmailContent
    cc: Sequence[str] = field(default_factory=tuple)
    reply_to: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"from": self.sender, "to": list(self.to)}
        if self.cc:
            payload["cc"] = list(self.cc)
        if self.reply_to:
            payload["reply_to"] = self.reply_to
        payload.update(self.content.provider_fields())
        return payload


class ResendClient:
    """Send email through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        timeout_seconds: float,
        transport: Transport = urllib_transport,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def send_email(self, email: OutboundEmail, deadline: Deadline) -> Optional[str]:
        """Submit one message.

        Returns:
            The provider message id, when the response carries one.

        Raises:
            UpstreamError: Resend rejected the message.
            UpstreamTimeoutError: The call ran out of time.
            UpstreamUnavailableError: Resend could not be reached.
        """
        response = send(
            self._transport,
            "POST",
            self._api_url,
            deadline=deadline,
            timeout_seconds=self._timeout_seconds,
            provider=RESEND,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            body=json.dumps(email.to_payload()).encode("utf-8"),
        )

        if not response.ok:
            message = parse_error_message(response.body)
            logger.warning(
                "Resend rejected message",
                extra={"context": {"status": response.status, "error": message}},
            )
            raise UpstreamError("Resend", message, response.status)

        return parse_message_id(response.body)
