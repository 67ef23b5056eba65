"""Environment-driven settings for the edge handlers.

Settings are read once per invocation through ``from_env``; nothing is
cached between requests so a redeployed environment takes effect on the
next call.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping
from typing import Optional

from daws_edge.utils.parsers import parse_bool
from daws_edge.utils.parsers import parse_csv
from daws_edge.utils.parsers import parse_int_setting
from daws_edge.utils.responses import parse_allowed_origins
from daws_edge.utils.validators import normalize_email_list

DEFAULT_RATE_LIMIT_WINDOW_MS = 60_000
DEFAULT_REQUEST_BUDGET_MS = 25_000
DEFAULT_JWKS_TIMEOUT_MS = 5_000


def _env(env: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if env is None else env


def _get(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or "").strip() or default


@dataclass(frozen=True)
class EndpointSettings:
    """Edge policy shared by every handler: CORS, size ceiling, rate limit."""

    name: str
    allowed_origins: tuple[str, ...]
    max_body_bytes: int
    rate_limit_max: int
    rate_limit_window_ms: int
    request_budget_ms: int

    @classmethod
    def from_env(
        cls,
        name: str,
        prefix: str,
        *,
        max_body_bytes: int,
        rate_limit_max: int,
        env: Optional[Mapping[str, str]] = None,
    ) -> "EndpointSettings":
        values = _env(env)
        return cls(
            name=name,
            allowed_origins=parse_allowed_origins(
                _get(values, f"{prefix}_ALLOWED_ORIGIN")
            ),
            max_body_bytes=parse_int_setting(
                values.get(f"{prefix}_MAX_REQUEST_BYTES"), max_body_bytes
            ),
            rate_limit_max=parse_int_setting(
                values.get(f"{prefix}_RATE_LIMIT_MAX"), rate_limit_max
            ),
            rate_limit_window_ms=parse_int_setting(
                values.get(f"{prefix}_RATE_LIMIT_WINDOW_MS"),
                DEFAULT_RATE_LIMIT_WINDOW_MS,
            ),
            request_budget_ms=parse_int_setting(
                values.get(f"{prefix}_REQUEST_BUDGET_MS"),
                DEFAULT_REQUEST_BUDGET_MS,
            ),
        )


@dataclass(frozen=True)
class FormForwarderSettings:
    """Settings for the form forwarding (email dispatch) handler."""

    endpoint: EndpointSettings
    routing_table: str
    default_cc: tuple[str, ...]
    from_email: str
    brand: str
    honeypot_field: str
    timeout_ms: int
    resend_api_key: str
    resend_api_url: str

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "FormForwarderSettings":
        values = _env(env)
        return cls(
            endpoint=EndpointSettings.from_env(
                "form-forwarder",
                "FORM_FORWARDER",
                max_body_bytes=32_000,
                rate_limit_max=20,
                env=values,
            ),
            routing_table=_get(values, "FORM_EMAIL_ROUTING_TABLE", "form_email_routing"),
            default_cc=tuple(
                normalize_email_list(_get(values, "FORM_FORWARDER_DEFAULT_CC"))
            ),
            from_email=_get(
                values,
                "FORM_FORWARDER_FROM_EMAIL",
                "DAWS Website <onboarding@resend.dev>",
            ),
            brand=_get(values, "FORM_FORWARDER_BRAND", "DAWS"),
            honeypot_field=_get(values, "FORM_FORWARDER_HONEYPOT_FIELD", "website"),
            timeout_ms=parse_int_setting(values.get("FORM_FORWARDER_TIMEOUT_MS"), 12_000),
            resend_api_key=_get(values, "RESEND_API_KEY"),
            resend_api_url=_get(values, "RESEND_API_URL", "https://api.resend.com/emails"),
        )


@dataclass(frozen=True)
class NewsletterSettings:
    """Settings for the Mailchimp audience sync handler."""

    endpoint: EndpointSettings
    api_key: str
    audience_id: str
    server_prefix: str
    default_tags: tuple[str, ...]
    double_opt_in: bool
    timeout_ms: int

    @property
    def data_center(self) -> str:
        """Explicit server prefix, else the suffix of the API key (``...-us21``)."""
        if self.server_prefix:
            return self.server_prefix
        if "-" not in self.api_key:
            return ""
        return self.api_key.rsplit("-", 1)[-1].strip()

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "NewsletterSettings":
        values = _env(env)
        return cls(
            endpoint=EndpointSettings.from_env(
                "newsletter-sync",
                "MAILCHIMP",
                max_body_bytes=4_096,
                rate_limit_max=10,
                env=values,
            ),
            api_key=_get(values, "MAILCHIMP_API_KEY"),
            audience_id=_get(values, "MAILCHIMP_AUDIENCE_ID"),
            server_prefix=_get(values, "MAILCHIMP_SERVER_PREFIX"),
            default_tags=parse_csv(values.get("MAILCHIMP_DEFAULT_TAGS")),
            double_opt_in=parse_bool(values.get("MAILCHIMP_DOUBLE_OPT_IN")),
            timeout_ms=parse_int_setting(values.get("MAILCHIMP_TIMEOUT_MS"), 12_000),
        )


@dataclass(frozen=True)
class EventSyncSettings:
    """Settings for the Eventbrite event sync handler."""

    endpoint: EndpointSettings
    private_token: str
    default_organization_id: str
    api_base: str
    timeout_ms: int
    page_size: int
    max_pages: int
    default_timezone: str
    currency: str

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "EventSyncSettings":
        values = _env(env)
        return cls(
            endpoint=EndpointSettings.from_env(
                "event-sync",
                "EVENTBRITE",
                max_body_bytes=16_000,
                rate_limit_max=30,
                env=values,
            ),
            private_token=_get(values, "EVENTBRITE_PRIVATE_TOKEN"),
            default_organization_id=_get(values, "EVENTBRITE_ORGANIZATION_ID"),
            api_base=_get(
                values, "EVENTBRITE_API_BASE", "https://www.eventbriteapi.com/v3"
            ).rstrip("/"),
            timeout_ms=parse_int_setting(values.get("EVENTBRITE_TIMEOUT_MS"), 15_000),
            page_size=parse_int_setting(values.get("EVENTBRITE_PAGE_SIZE"), 50),
            max_pages=parse_int_setting(values.get("EVENTBRITE_MAX_PAGES"), 20),
            default_timezone=_get(
                values, "EVENTBRITE_DEFAULT_TIMEZONE", "Australia/Sydney"
            ),
            currency=_get(values, "EVENTBRITE_CURRENCY", "AUD"),
        )


@dataclass(frozen=True)
class AdminAuthSettings:
    """Identity provider and allow-list settings for admin-only actions."""

    supabase_url: str
    jwt_secret: str
    allowlist_table: str
    jwks_timeout_ms: int = DEFAULT_JWKS_TIMEOUT_MS

    @property
    def issuer(self) -> str:
        return f"{self.supabase_url}/auth/v1" if self.supabase_url else ""

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json" if self.issuer else ""

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AdminAuthSettings":
        values = _env(env)
        return cls(
            supabase_url=_get(values, "SUPABASE_URL").rstrip("/"),
            jwt_secret=_get(values, "SUPABASE_JWT_SECRET"),
            allowlist_table=_get(values, "ADMIN_ALLOWLIST_TABLE", "job_board_admins"),
            jwks_timeout_ms=parse_int_setting(
                values.get("SUPABASE_JWKS_TIMEOUT_MS"), DEFAULT_JWKS_TIMEOUT_MS
            ),
        )
