"""HTML and text renderers for outbound provider payloads."""

from daws_edge.templates.event_description import build_event_description_html
from daws_edge.templates.form_submission import build_form_submission_email
from daws_edge.templates.form_submission import format_submission_entries
from daws_edge.templates.types import EmailContent

__all__ = [
    "EmailContent",
    "build_event_description_html",
    "build_form_submission_email",
    "format_submission_entries",
]
