"""Fixed-window rate limiting for public endpoints.

A window starts the first time a key is seen, or once ``window_ms`` has
elapsed since the window started; within a window at most
``max_requests`` calls are allowed. Counting is approximate at window
boundaries and is an abuse-deterrence heuristic, not a guarantee.

The counter store is pluggable:

- ``InMemoryRateLimitStore`` (default) lives for the lifetime of the
  Lambda container and is shared by requests handled in it.
- ``DynamoDBRateLimitStore`` shares counters across containers using an
  atomic ``ADD`` update. Its windows are aligned to the epoch.
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Any
from typing import Callable
from typing import Optional
from typing import Protocol

from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from daws_edge.services.aws_clients import get_dynamodb_resource
from daws_edge.utils.logging import get_logger

logger = get_logger(__name__)

MAX_IN_MEMORY_KEYS = 10_000


class RateLimitStore(Protocol):
    """Counter backend for ``RateLimiter``."""

    def hit(self, key: str, window_ms: int, now_ms: int) -> int:
        """Record one request and return the count in the current window."""
        ...


@dataclass
class RateLimitBucket:
    count: int
    window_start_ms: int


class InMemoryRateLimitStore:
    """Process-local buckets guarded by a lock."""

    def __init__(self, max_keys: int = MAX_IN_MEMORY_KEYS) -> None:
        self._buckets: dict[str, RateLimitBucket] = {}
        self._lock = threading.Lock()
        self._max_keys = max_keys

    def hit(self, key: str, window_ms: int, now_ms: int) -> int:
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None or now_ms - bucket.window_start_ms >= window_ms:
                if bucket is None and len(self._buckets) >= self._max_keys:
                    self._evict_expired(window_ms, now_ms)
                self._buckets[key] = RateLimitBucket(count=1, window_start_ms=now_ms)
                return 1
            bucket.count += 1
            return bucket.count

    def _evict_expired(self, window_ms: int, now_ms: int) -> None:
        expired = [
            key
            for key, bucket in self._buckets.items()
            if now_ms - bucket.window_start_ms >= window_ms
        ]
        for key in expired:
            del self._buckets[key]

    def __len__(self) -> int:
        return len(self._buckets)


class DynamoDBRateLimitStore:
    """Counters shared across instances in a DynamoDB table.

    The table needs a string partition key (``key_attribute``); enable TTL on
    ``expires_at`` so old windows are cleaned up.
    """

    def __init__(
        self,
        table_name: str,
        key_attribute: str = "pk",
        table: Any = None,
    ) -> None:
        self._table = table or get_dynamodb_resource().Table(table_name)
        self._key_attribute = key_attribute

    def hit(self, key: str, window_ms: int, now_ms: int) -> int:
        window_index = now_ms // window_ms
        expires_at = ((window_index + 1) * window_ms) // 1000 + 60
        response = self._table.update_item(
            Key={self._key_attribute: f"{key}#{window_index}"},
            UpdateExpression="ADD #count :inc SET #expires = if_not_exists(#expires, :expires)",
            ExpressionAttributeNames={"#count": "count", "#expires": "expires_at"},
            ExpressionAttributeValues={":inc": 1, ":expires": expires_at},
            ReturnValues="UPDATED_NEW",
        )
        return int(response["Attributes"]["count"])


class RateLimiter:
    """Fixed-window limiter over an injected store."""

    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store: RateLimitStore = store or InMemoryRateLimitStore()
        self._clock = clock

    def allow(self, key: str, max_requests: int, window_ms: int) -> bool:
        """Return True when the request identified by ``key`` may proceed.

        A shared store that cannot be reached fails open: the limiter is a
        deterrent and must not take the endpoint down with it.
        """
        now_ms = int(self._clock() * 1000)
        try:
            count = self.store.hit(key, window_ms, now_ms)
        except (BotoCoreError, ClientError) as exc:
            logger.warning(f"Rate limit store unavailable, allowing request: {exc}")
            return True
        return count <= max_requests


_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Return the container-wide limiter, creating it on first use.

    ``RATE_LIMIT_TABLE`` selects the shared DynamoDB store; otherwise the
    in-memory store is used.
    """
    global _limiter
    if _limiter is None:
        table_name = (os.getenv("RATE_LIMIT_TABLE") or "").strip()
        store: RateLimitStore = (
            DynamoDBRateLimitStore(table_name) if table_name else InMemoryRateLimitStore()
        )
        _limiter = RateLimiter(store)
    return _limiter


def reset_rate_limiter() -> None:
    """Drop the container-wide limiter (useful in tests)."""
    global _limiter
    _limiter = None
