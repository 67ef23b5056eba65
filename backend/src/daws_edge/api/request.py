"""Request pipeline shared by the public edge handlers.

Every handler runs the same gauntlet before its own logic:

1. ``OPTIONS`` answers the CORS pre-flight; anything but ``POST`` is 405.
2. Optional origin allow-check (403).
3. Per-client fixed-window rate limit (429).
4. Body decoding and byte ceiling (413), then JSON object parsing (400).

Handler logic receives the parsed payload and a ``Deadline`` for the
invocation, and returns a status code and body. Any ``AppError`` it raises
is normalized into ``{ok: false, message}`` with the error's status.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from dataclasses import dataclass
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional

from daws_edge.config import EndpointSettings
from daws_edge.exceptions import AppError
from daws_edge.exceptions import AuthorizationError
from daws_edge.exceptions import MethodNotAllowedError
from daws_edge.exceptions import PayloadTooLargeError
from daws_edge.exceptions import RateLimitError
from daws_edge.exceptions import ValidationError
from daws_edge.services.http_client import Deadline
from daws_edge.services.rate_limit import RateLimiter
from daws_edge.services.rate_limit import get_rate_limiter
from daws_edge.utils.logging import clear_request_context
from daws_edge.utils.logging import get_logger
from daws_edge.utils.logging import hash_for_correlation
from daws_edge.utils.logging import log_lambda_event
from daws_edge.utils.logging import log_response
from daws_edge.utils.logging import set_request_context
from daws_edge.utils.responses import error_response
from daws_edge.utils.responses import get_header
from daws_edge.utils.responses import is_origin_allowed
from daws_edge.utils.responses import json_response
from daws_edge.utils.responses import preflight_response

logger = get_logger(__name__)

ORIGIN_NOT_ALLOWED = "Origin is not allowed."
INVALID_PAYLOAD = "Invalid request payload."
INTERNAL_ERROR = "Internal server error."
UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class HandlerResult:
    status_code: int
    body: dict[str, Any]


@dataclass(frozen=True)
class RequestContext:
    """What handler logic gets to see of the invocation."""

    event: Mapping[str, Any]
    payload: dict[str, Any]
    deadline: Deadline
    client_id: str


HandlerLogic = Callable[[RequestContext], HandlerResult]


def get_client_id(event: Mapping[str, Any]) -> str:
    """Identify the caller by network address.

    The first ``X-Forwarded-For`` entry wins, then ``X-Real-IP``, then the
    API Gateway source address.
    """
    forwarded = get_header(event, "x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = get_header(event, "x-real-ip")
    if real_ip:
        return real_ip

    identity = (event.get("requestContext") or {}).get("identity") or {}
    source_ip = str(identity.get("sourceIp") or "").strip()
    return source_ip or UNKNOWN_CLIENT


def read_body_bytes(event: Mapping[str, Any], max_bytes: int) -> bytes:
    """Return the raw request body, enforcing the byte ceiling first.

    The ceiling is checked on bytes before any text decoding, so an
    oversized body is a 413 whatever it contains. A body that is not valid
    base64 is measured by its decoded length before being rejected.
    """
    body = event.get("body")
    if body is None:
        return b""
    text = str(body)
    if not event.get("isBase64Encoded"):
        raw = text.encode("utf-8", "surrogatepass")
        check_body_size(len(raw), max_bytes)
        return raw

    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        check_body_size(len(text) * 3 // 4, max_bytes)
        raise ValidationError(INVALID_PAYLOAD) from exc
    check_body_size(len(raw), max_bytes)
    return raw


def check_body_size(size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise PayloadTooLargeError(max_bytes, size)


def decode_body_text(raw: bytes) -> str:
    """Decode a UTF-8 body; lone surrogates and stray bytes are a 400."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationError(INVALID_PAYLOAD) from exc


def parse_json_object(body: str) -> dict[str, Any]:
    """Parse a JSON object body.

    Raises:
        ValidationError: The body is not JSON or not an object.
    """
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise ValidationError(INVALID_PAYLOAD) from exc
    if not isinstance(payload, dict):
        raise ValidationError(INVALID_PAYLOAD)
    return payload


def require_allowed_origin(event: Mapping[str, Any], endpoint: EndpointSettings) -> None:
    if not is_origin_allowed(event, endpoint.allowed_origins):
        logger.warning(
            "Origin rejected",
            extra={"context": {"origin": get_header(event, "origin") or None}},
        )
        raise AuthorizationError(ORIGIN_NOT_ALLOWED)


def enforce_rate_limit(
    endpoint: EndpointSettings,
    client_id: str,
    limiter: RateLimiter,
) -> None:
    key = f"{endpoint.name}#{client_id}"
    if not limiter.allow(key, endpoint.rate_limit_max, endpoint.rate_limit_window_ms):
        logger.warning(
            "Rate limit exceeded",
            extra={"context": {"client": hash_for_correlation(client_id)}},
        )
        raise RateLimitError()


def _guarded_request(
    event: Mapping[str, Any],
    context: Any,
    endpoint: EndpointSettings,
    logic: HandlerLogic,
    enforce_origin: bool,
    limiter: RateLimiter,
) -> HandlerResult:
    method = str(event.get("httpMethod") or "").upper()
    if method != "POST":
        raise MethodNotAllowedError(method)

    if enforce_origin:
        require_allowed_origin(event, endpoint)

    client_id = get_client_id(event)
    enforce_rate_limit(endpoint, client_id, limiter)

    raw = read_body_bytes(event, endpoint.max_body_bytes)
    payload = parse_json_object(decode_body_text(raw))

    deadline = Deadline.for_invocation(endpoint.request_budget_ms, context)
    return logic(RequestContext(event, payload, deadline, client_id))


def handle_request(
    event: Mapping[str, Any],
    context: Any,
    endpoint: EndpointSettings,
    logic: HandlerLogic,
    *,
    enforce_origin: bool = True,
    error_fields: Optional[Mapping[str, Any]] = None,
    limiter: Optional[RateLimiter] = None,
) -> dict[str, Any]:
    """Run the shared edge pipeline around ``logic``.

    Args:
        event: API Gateway proxy event.
        context: Lambda context, used to cap the request deadline.
        endpoint: The handler's CORS, size and rate-limit policy.
        logic: Handler-specific work on the parsed payload.
        enforce_origin: Reject disallowed origins before any other work.
        error_fields: Extra fields added to every error body.
        limiter: Rate limiter; the container-wide one by default.
    """
    start_time = time.perf_counter()
    request_id = (event.get("requestContext") or {}).get("requestId", "")
    set_request_context(req_id=request_id, handler=endpoint.name)
    log_lambda_event(logger, event)
    origins = endpoint.allowed_origins

    try:
        if str(event.get("httpMethod") or "").upper() == "OPTIONS":
            response = preflight_response(event, origins)
        else:
            try:
                result = _guarded_request(
                    event,
                    context,
                    endpoint,
                    logic,
                    enforce_origin,
                    limiter or get_rate_limiter(),
                )
                response = json_response(result.status_code, result.body, event, origins)
            except AppError as exc:
                if exc.status_code >= 500:
                    logger.error(
                        f"Request failed: {exc.message}",
                        extra={"context": {"detail": exc.detail}},
                    )
                response = error_response(exc, event, origins, error_fields)
            except Exception:
                logger.exception("Unexpected error handling request")
                response = error_response(
                    AppError(INTERNAL_ERROR), event, origins, error_fields
                )

        log_response(logger, response["statusCode"], (time.perf_counter() - start_time) * 1000)
        return response
    finally:
        clear_request_context()
