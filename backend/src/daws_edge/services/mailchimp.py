"""Mailchimp audience (marketing list) client.

Mailchimp reports a duplicate sign-up as a 400 "Member Exists" problem
document. That case is a successful outcome for the website: the address
is already on the list.
"""

from __future__ import annotations

import base64
import json
import re
from dataclasses import dataclass
from typing import Optional
from typing import Sequence
from urllib.parse import quote

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import ValidationError as PydanticValidationError

from daws_edge.api.schemas import SyncOutcome
from daws_edge.services.http_client import Deadline
from daws_edge.services.http_client import ProviderMessages
from daws_edge.services.http_client import Transport
from daws_edge.services.http_client import send
from daws_edge.services.http_client import urllib_transport
from daws_edge.utils.logging import get_logger
from daws_edge.utils.logging import mask_email

logger = get_logger(__name__)

MAILCHIMP = ProviderMessages(
    name="Mailchimp",
    timeout="Mailchimp request timed out.",
    unavailable="Unable to reach Mailchimp API.",
)

FALLBACK_ERROR_MESSAGE = "Mailchimp API request failed."
MEMBER_EXISTS_TITLE = "Member Exists"
ALREADY_MEMBER_PATTERN = re.compile(r"already a list member", re.IGNORECASE)


class MailchimpProblem(BaseModel):
    """Mailchimp's RFC 7807 style error document."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    detail: Optional[str] = None


def parse_problem(raw_body: str) -> MailchimpProblem:
    """Parse an error body, returning an empty problem on any mismatch."""
    if not raw_body:
        return MailchimpProblem()
    try:
        return MailchimpProblem.model_validate_json(raw_body)
    except PydanticValidationError:
        return MailchimpProblem()


def is_duplicate_member(status: int, problem: MailchimpProblem) -> bool:
    if status != 400:
        return False
    if problem.title == MEMBER_EXISTS_TITLE:
        return True
    return bool(problem.detail and ALREADY_MEMBER_PATTERN.search(problem.detail))


@dataclass(frozen=True)
class AudienceSyncResult:
    outcome: SyncOutcome
    status_code: int = 200
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not SyncOutcome.FAILED


class MailchimpClient:
    """Add members to one Mailchimp audience."""

    def __init__(
        self,
        api_key: str,
        data_center: str,
        audience_id: str,
        timeout_seconds: float,
        transport: Transport = urllib_transport,
    ) -> None:
        self._api_key = api_key
        self._data_center = data_center
        self._audience_id = audience_id
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def members_url(self) -> str:
        return (
            f"https://{self._data_center}.api.mailchimp.com/3.0/lists/"
            f"{quote(self._audience_id, safe='')}/members"
        )

    def _auth_header(self) -> str:
        # Mailchimp ignores the username part of Basic auth.
        token = base64.b64encode(f"daws:{self._api_key}".encode("utf-8")).decode("ascii")
        return f"Basic {token}"

    def add_member(
        self,
        email: str,
        deadline: Deadline,
        double_opt_in: bool = False,
        tags: Sequence[str] = (),
    ) -> AudienceSyncResult:
        """Subscribe ``email`` to the audience.

        ``double_opt_in`` registers the member as ``pending`` so Mailchimp
        sends a confirmation email first.

        Raises:
            UpstreamTimeoutError: The call ran out of time.
            UpstreamUnavailableError: Mailchimp could not be reached.
        """
        body: dict[str, object] = {
            "email_address": email,
            "status": "pending" if double_opt_in else "subscribed",
        }
        if tags:
            body["tags"] = list(tags)

        response = send(
            self._transport,
            "POST",
            self.members_url,
            deadline=deadline,
            timeout_seconds=self._timeout_seconds,
            provider=MAILCHIMP,
            headers={
                "Content-Type": "application/json",
                "Authorization": self._auth_header(),
            },
            body=json.dumps(body).encode("utf-8"),
        )

        if response.ok:
            logger.info(f"Mailchimp member synced: {mask_email(email)}")
            return AudienceSyncResult(SyncOutcome.SYNCED)

        problem = parse_problem(response.body)
        if is_duplicate_member(response.status, problem):
            logger.info(f"Mailchimp member already subscribed: {mask_email(email)}")
            return AudienceSyncResult(SyncOutcome.ALREADY_SUBSCRIBED)

        message = problem.detail or problem.title or FALLBACK_ERROR_MESSAGE
        logger.warning(
            "Mailchimp sync failed",
            extra={"context": {"status": response.status, "title": problem.title}},
        )
        return AudienceSyncResult(
            SyncOutcome.FAILED,
            status_code=response.status if 400 <= response.status < 600 else 502,
            message=message,
        )
