"""Email template for forwarded website form submissions.

The HTML and plain-text bodies are rendered from the same ordered list of
``(field, value)`` entries so both parts always show the same data. HTML
uses inline CSS for email client compatibility and escapes every value.
"""

from __future__ import annotations

import json
from html import escape
from typing import Any
from typing import Mapping

from daws_edge.templates.types import EmailContent

PREFERRED_FIELD_ORDER = (
    "name",
    "email",
    "source",
    "subject",
    "company",
    "message",
    "page_path",
    "received_at",
)

FORM_SUBJECT = "[{brand}] {form_label}: {sender}"

ROW_HTML = (
    '<tr><td style="padding:8px;border:1px solid #e2e8f0;font-weight:600;">{key}</td>'
    '<td style="padding:8px;border:1px solid #e2e8f0;">{value}</td></tr>'
)

FORM_HTML = """
<div style="font-family:Arial,sans-serif;line-height:1.5;color:#0f172a;">
  <h2 style="margin:0 0 12px;">{form_label} submission</h2>
  <table style="border-collapse:collapse;width:100%;max-width:760px;">
    <tbody>{rows}</tbody>
  </table>
</div>
""".strip()


def to_display_value(value: Any) -> str:
    """Render a submitted value as text.

    Strings pass through, booleans render as ``true``/``false``, numbers
    via ``str`` and anything structured as indented JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    try:
        return json.dumps(value, indent=2, default=str)
    except (TypeError, ValueError):
        return str(value)


def format_submission_entries(submission: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Order submission fields for display and drop blank values.

    Preferred fields come first in a fixed order, followed by every other
    field in submission order.
    """
    entries: list[tuple[str, str]] = []
    for key in PREFERRED_FIELD_ORDER:
        if key in submission:
            entries.append((key, to_display_value(submission[key])))
    for key, value in submission.items():
        if key not in PREFERRED_FIELD_ORDER:
            entries.append((str(key), to_display_value(value)))
    return [(key, value) for key, value in entries if value.strip()]


def _render_html(form_label: str, entries: list[tuple[str, str]]) -> str:
    rows = "".join(
        ROW_HTML.format(key=escape(key), value=escape(value).replace("\n", "<br>"))
        for key, value in entries
    )
    return FORM_HTML.format(form_label=escape(form_label), rows=rows)


def _render_text(form_label: str, entries: list[tuple[str, str]]) -> str:
    lines = "\n".join(f"{key}: {value}" for key, value in entries)
    return f"{form_label} submission\n\n{lines}"


def build_form_submission_email(
    *,
    brand: str,
    form_label: str,
    sender: str,
    submission: Mapping[str, Any],
) -> EmailContent:
    """Build the notification for one form submission.

    Args:
        brand: Short organization name shown in the subject prefix.
        form_label: Human label of the form, e.g. "Become a Speaker".
        sender: Submitter name, email or a placeholder.
        submission: The raw submitted field map.
    """
    entries = format_submission_entries(submission)
    return EmailContent(
        subject=FORM_SUBJECT.format(brand=brand, form_label=form_label, sender=sender),
        body_text=_render_text(form_label, entries),
        body_html=_render_html(form_label, entries),
    )
