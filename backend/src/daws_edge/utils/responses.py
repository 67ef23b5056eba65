"""Shared response utilities for Lambda handlers."""

from __future__ import annotations

import json
import re
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Sequence
from urllib.parse import urlparse

from daws_edge.exceptions import AppError

WILDCARD_ORIGIN = "*"

ALLOWED_HEADERS = "authorization, x-client-info, apikey, content-type"
ALLOWED_METHODS = "POST, OPTIONS"

_ORIGIN_SEPARATORS = re.compile(r"[\n,]")


def get_header(event: Mapping[str, Any], name: str) -> str:
    """Return a request header value, matched case-insensitively."""
    headers = event.get("headers") or {}
    target = name.lower()
    for key, value in headers.items():
        if str(key).lower() == target and value is not None:
            return str(value).strip()
    return ""


def _strip_trailing_slashes(origin: str) -> str:
    return origin if origin == WILDCARD_ORIGIN else origin.rstrip("/")


def _is_valid_allowed_origin(origin: str) -> bool:
    if origin == WILDCARD_ORIGIN:
        return True
    parsed = urlparse(origin)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def parse_allowed_origins(raw_value: str) -> tuple[str, ...]:
    """Parse a comma or newline delimited origin allow-list.

    Entries are trimmed and stripped of trailing slashes. Anything that is
    neither the wildcard nor an http(s) origin is discarded.
    """
    origins = (
        _strip_trailing_slashes(origin.strip())
        for origin in _ORIGIN_SEPARATORS.split(raw_value or "")
    )
    return tuple(
        origin for origin in origins if origin and _is_valid_allowed_origin(origin)
    )


def _request_origin(event: Mapping[str, Any]) -> str:
    return get_header(event, "origin").rstrip("/")


def _allows_any_origin(allowed_origins: Sequence[str]) -> bool:
    return not allowed_origins or WILDCARD_ORIGIN in allowed_origins


def resolve_allowed_origin(
    event: Mapping[str, Any],
    allowed_origins: Sequence[str],
) -> str:
    """Resolve the value of ``Access-Control-Allow-Origin``.

    An empty or wildcard allow-list yields ``*``. A matching request origin
    is echoed back; otherwise the first configured origin is returned and
    the browser enforces the mismatch. Rejection is left to
    ``is_origin_allowed``.
    """
    if _allows_any_origin(allowed_origins):
        return WILDCARD_ORIGIN

    origin = _request_origin(event)
    if origin and origin in allowed_origins:
        return origin
    return allowed_origins[0]


def is_origin_allowed(
    event: Mapping[str, Any],
    allowed_origins: Sequence[str],
) -> bool:
    """Return True when a mutating request may proceed from its origin."""
    if _allows_any_origin(allowed_origins):
        return True

    origin = _request_origin(event)
    if not origin:
        return False
    return origin in allowed_origins


def get_cors_headers(
    event: Mapping[str, Any],
    allowed_origins: Sequence[str],
) -> dict[str, str]:
    """Get CORS headers for the response."""
    return {
        "Access-Control-Allow-Origin": resolve_allowed_origin(event, allowed_origins),
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Vary": "Origin",
    }


def get_security_headers() -> dict[str, str]:
    """Get headers attached to every response.

    Responses carry per-request outcomes and must never be cached.
    """
    return {
        "X-Content-Type-Options": "nosniff",
        "Cache-Control": "no-store",
    }


def json_response(
    status_code: int,
    body: Mapping[str, Any],
    event: Mapping[str, Any],
    allowed_origins: Sequence[str],
    headers: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    """Create a JSON API Gateway response.

    Args:
        status_code: HTTP status code.
        body: JSON-serializable response body.
        event: The Lambda event, used for CORS origin resolution.
        allowed_origins: The handler's configured origin allow-list.
        headers: Optional additional headers to include.

    Returns:
        API Gateway response dictionary.
    """
    response_headers = {"Content-Type": "application/json"}
    response_headers.update(get_security_headers())
    response_headers.update(get_cors_headers(event, allowed_origins))
    if headers:
        response_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(dict(body), default=str),
    }


def preflight_response(
    event: Mapping[str, Any],
    allowed_origins: Sequence[str],
) -> dict[str, Any]:
    """Answer a CORS pre-flight request with headers only."""
    headers = get_security_headers()
    headers.update(get_cors_headers(event, allowed_origins))
    return {
        "statusCode": 200,
        "headers": headers,
        "body": "ok",
    }


def error_response(
    error: AppError,
    event: Mapping[str, Any],
    allowed_origins: Sequence[str],
    extra_fields: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Create an ``{ok: false, message}`` response from an application error.

    Args:
        error: The error to report; its status code is used as-is.
        event: The Lambda event, used for CORS origin resolution.
        allowed_origins: The handler's configured origin allow-list.
        extra_fields: Handler-specific fields added to every error body.
    """
    body = error.to_dict()
    if extra_fields:
        body.update(extra_fields)
    return json_response(error.status_code, body, event, allowed_origins)
