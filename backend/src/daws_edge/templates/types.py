"""Rendered message types shared by templates and provider clients."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EmailContent:
    """Subject plus HTML and plain-text parts of one notification."""

    subject: str
    body_text: str
    body_html: str

    def provider_fields(self) -> dict[str, str]:
        """Message fields as named by the Resend send-email API."""
        return {
            "subject": self.subject,
            "html": self.body_html,
            "text": self.body_text,
        }
