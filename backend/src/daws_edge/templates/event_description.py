"""HTML description for events published to Eventbrite."""

from __future__ import annotations

from html import escape
from typing import Optional
from typing import Sequence

from daws_edge.api.schemas import TalkPayload


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _render_talk(talk: TalkPayload) -> str:
    title = escape(_clean(talk.title) or "Talk")
    description = escape(_clean(talk.description))
    speaker_name = escape(_clean(talk.speaker_name))
    speaker_headline = escape(_clean(talk.speaker_headline))

    parts = [f"<h3>{title}</h3>"]
    if speaker_name:
        headline = f" - {speaker_headline}" if speaker_headline else ""
        parts.append(f"<p><strong>{speaker_name}</strong>{headline}</p>")
    if description:
        parts.append(f"<p>{description}</p>")
    return "<div>" + "".join(parts) + "</div>"


def build_event_description_html(
    description: Optional[str],
    location_name: Optional[str],
    talks: Sequence[TalkPayload],
) -> str:
    """Concatenate description, location and talk lineup into escaped HTML.

    Returns:
        The HTML fragment, or an empty string when there is nothing to show.
    """
    sections: list[str] = []

    event_description = _clean(description)
    if event_description:
        sections.append(f"<p>{escape(event_description)}</p>")

    location = _clean(location_name)
    if location:
        sections.append(f"<p><strong>Location:</strong> {escape(location)}</p>")

    if talks:
        lineup = "\n".join(_render_talk(talk) for talk in talks)
        sections.append(f"<h2>Talk Lineup</h2>\n{lineup}")

    return "\n".join(sections)
