"""Outbound HTTP calls bounded by a per-request deadline.

Every provider call goes through ``send()``, which:

- refuses to start a call once the request ``Deadline`` has passed;
- bounds the socket timeout by the smaller of the per-call timeout and the
  time left on the deadline;
- classifies failures as timeout (504) or unreachable provider (502),
  distinct from a provider answering with an error status.

The transport is injectable so tests can count and script provider calls
without touching the network. The default transport uses
``urllib.request`` and closes the connection on every exit path.
"""

from __future__ import annotations

import http.client
import socket
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable
from typing import Optional

from daws_edge.exceptions import UpstreamTimeoutError
from daws_edge.exceptions import UpstreamUnavailableError
from daws_edge.utils.logging import get_logger

logger = get_logger(__name__)

LAMBDA_SAFETY_MARGIN_MS = 500


class Deadline:
    """Absolute point in time after which no external call is started."""

    def __init__(
        self,
        budget_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self.expires_at = clock() + max(budget_seconds, 0.0)

    @classmethod
    def for_invocation(
        cls,
        budget_ms: int,
        context: Any = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "Deadline":
        """Build a deadline from the configured budget and the Lambda context.

        The Lambda's own remaining time (minus a safety margin) caps the
        configured budget so the handler can still answer before it is
        killed.
        """
        budget = budget_ms
        remaining_fn = getattr(context, "get_remaining_time_in_millis", None)
        if callable(remaining_fn):
            try:
                lambda_remaining = int(remaining_fn()) - LAMBDA_SAFETY_MARGIN_MS
            except (TypeError, ValueError):
                lambda_remaining = budget
            budget = min(budget, lambda_remaining)
        return cls(budget / 1000, clock=clock)

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self.expires_at - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def timeout_for(self, per_call_seconds: float) -> float:
        """Socket timeout for the next call."""
        return min(per_call_seconds, self.remaining())


@dataclass(frozen=True)
class HttpRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    timeout: float = 10.0


@dataclass(frozen=True)
class HttpResponse:
    status: int
    reason: str
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass(frozen=True)
class ProviderMessages:
    """Caller-facing messages for one provider's transport failures."""

    name: str
    timeout: str
    unavailable: str


class TransportTimeout(Exception):
    """The transport gave up waiting on the provider."""


class TransportFailure(Exception):
    """The provider could not be reached (DNS, TLS, connection, protocol)."""


Transport = Callable[[HttpRequest], HttpResponse]


def _read_text(stream: Any) -> str:
    raw = stream.read()
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw or ""


def urllib_transport(request: HttpRequest) -> HttpResponse:
    """Perform a request with ``urllib.request``.

    HTTP error statuses are returned as responses, not raised, so callers
    can interpret each provider's error envelope.

    Raises:
        TransportTimeout: The socket timed out.
        TransportFailure: Any other connection or protocol failure.
    """
    req = urllib.request.Request(
        request.url,
        data=request.body,
        headers=request.headers,
        method=request.method,
    )
    try:
        with urllib.request.urlopen(req, timeout=request.timeout) as resp:  # nosec B310 - provider URLs come from configuration
            return HttpResponse(resp.status, str(resp.reason or ""), _read_text(resp))
    except urllib.error.HTTPError as exc:
        try:
            body = _read_text(exc)
        except OSError:
            body = ""
        finally:
            exc.close()
        return HttpResponse(exc.code, str(exc.reason or ""), body)
    except (TimeoutError, socket.timeout) as exc:
        raise TransportTimeout(str(exc) or "timed out") from exc
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, (TimeoutError, socket.timeout)):
            raise TransportTimeout(str(exc.reason) or "timed out") from exc
        raise TransportFailure(str(exc.reason)) from exc
    except (OSError, http.client.HTTPException) as exc:
        raise TransportFailure(f"{type(exc).__name__}: {exc}") from exc


def send(
    transport: Transport,
    method: str,
    url: str,
    *,
    deadline: Deadline,
    timeout_seconds: float,
    provider: ProviderMessages,
    headers: Optional[dict[str, str]] = None,
    body: Optional[bytes] = None,
) -> HttpResponse:
    """Make one deadline-bound provider call.

    Raises:
        UpstreamTimeoutError: The deadline had passed or the call timed out.
        UpstreamUnavailableError: The provider could not be reached.
    """
    if deadline.expired():
        logger.warning(f"{provider.name} call skipped: request deadline exceeded")
        raise UpstreamTimeoutError(provider.name, provider.timeout)

    request = HttpRequest(
        method=method,
        url=url,
        headers=headers or {},
        body=body,
        timeout=deadline.timeout_for(timeout_seconds),
    )
    try:
        return transport(request)
    except TransportTimeout as exc:
        logger.warning(f"{provider.name} call timed out: {exc}")
        raise UpstreamTimeoutError(provider.name, provider.timeout) from exc
    except TransportFailure as exc:
        logger.warning(f"{provider.name} call failed: {exc}")
        raise UpstreamUnavailableError(
            provider.name, provider.unavailable, detail=str(exc)
        ) from exc
