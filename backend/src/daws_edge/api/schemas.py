"""Pydantic schemas for inbound request bodies."""

from __future__ import annotations

import enum
from typing import Any
from typing import List
from typing import Mapping
from typing import Optional
from typing import Type
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator

from daws_edge.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class FormKind(str, enum.Enum):
    """Closed set of website forms that can be forwarded by email."""

    GENERAL = "general"
    SPEAKER = "speaker"
    MEMBER = "member"
    SPONSOR = "sponsor"
    JOB = "job"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FormKind"]:
        candidate = (value or "").strip().lower()
        try:
            return cls(candidate)
        except ValueError:
            return None


class EventAction(str, enum.Enum):
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"


class SyncOutcome(str, enum.Enum):
    """Result of an audience sync; ``already_subscribed`` is a success."""

    SYNCED = "synced"
    ALREADY_SUBSCRIBED = "already_subscribed"
    FAILED = "failed"


class RequestModel(BaseModel):
    """Base for request bodies: unknown keys ignored, ids may be numbers."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class FormForwardRequest(RequestModel):
    form_kind: Optional[str] = None
    form_kind_alt: Optional[str] = Field(default=None, alias="formKind")
    submission: Optional[dict[str, Any]] = None

    @field_validator("submission", mode="before")
    @classmethod
    def _ignore_non_object_submission(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    @property
    def requested_kind(self) -> Optional[str]:
        return self.form_kind if self.form_kind is not None else self.form_kind_alt


class NewsletterSyncRequest(RequestModel):
    email: Optional[str] = None


class TalkPayload(RequestModel):
    title: Optional[str] = None
    description: Optional[str] = None
    speaker_name: Optional[str] = Field(default=None, alias="speakerName")
    speaker_headline: Optional[str] = Field(default=None, alias="speakerHeadline")


class EventPayload(RequestModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location_name: Optional[str] = Field(default=None, alias="locationName")
    timezone: Optional[str] = None
    start_at: Optional[str] = Field(default=None, alias="startAt")
    end_at: Optional[str] = Field(default=None, alias="endAt")
    talks: List[TalkPayload] = Field(default_factory=list)

    @field_validator("talks", mode="before")
    @classmethod
    def _default_talks(cls, value: Any) -> Any:
        return [] if value is None else value


class EventSyncRequest(RequestModel):
    action: Optional[str] = None
    organization_id: Optional[str] = Field(default=None, alias="organizationId")
    eventbrite_event_id: Optional[str] = Field(default=None, alias="eventbriteEventId")
    event: Optional[EventPayload] = None


def parse_request(model: Type[ModelT], payload: Mapping[str, Any]) -> ModelT:
    """Validate a decoded JSON body against a request schema.

    Raises:
        ValidationError: Naming the first offending field.
    """
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        reason = first.get("msg", "invalid value")
        message = f"Invalid request payload: {field}: {reason}" if field else (
            "Invalid request payload."
        )
        raise ValidationError(message, field=field) from exc
