"""Custom exception classes for the edge handlers.

This module provides domain-specific exception classes that carry
appropriate HTTP status codes and structured error information. The
response normalizer turns any ``AppError`` into the ``{ok, message}``
wire contract.
"""

from __future__ import annotations

from typing import Any
from typing import Optional


class AppError(Exception):
    """Base exception for application errors.

    All application-specific exceptions should inherit from this class.
    Each exception carries an HTTP status code and optional details.

    Attributes:
        message: Human-readable error message returned to the caller.
        status_code: HTTP status code (default 500).
        detail: Optional additional context, logged but not returned.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response body."""
        return {"ok": False, "message": self.message}


class ValidationError(AppError):
    """Raised when input validation fails.

    Use for malformed requests, invalid parameter values,
    or missing required fields in user input.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        detail = f"Field: {field}" if field else None
        super().__init__(message, status_code=400, detail=detail)
        self.field = field


class PayloadTooLargeError(AppError):
    """Raised when the encoded request body exceeds the handler ceiling."""

    def __init__(self, limit_bytes: int, actual_bytes: int):
        super().__init__(
            "Request payload is too large.",
            status_code=413,
            detail=f"{actual_bytes} bytes exceeds limit of {limit_bytes}",
        )
        self.limit_bytes = limit_bytes
        self.actual_bytes = actual_bytes


class MethodNotAllowedError(AppError):
    """Raised for any method other than POST and OPTIONS."""

    def __init__(self, method: str):
        super().__init__(
            "Method not allowed.",
            status_code=405,
            detail=f"Method: {method or 'unknown'}",
        )
        self.method = method


class AuthorizationError(AppError):
    """Raised when authorization fails.

    Use when the caller is identified but lacks permission
    for the requested action (including a disallowed origin).
    """

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=403)


class AuthenticationError(AppError):
    """Raised when authentication fails.

    Use when credentials are missing or invalid.
    """

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)


class ConfigurationError(AppError):
    """Raised when required configuration is missing.

    Use when environment variables or settings are not properly configured.
    """

    def __init__(self, message: str, config_name: Optional[str] = None):
        super().__init__(
            message,
            status_code=500,
            detail=f"Missing configuration: {config_name}" if config_name else None,
        )
        self.config_name = config_name


class DatabaseError(AppError):
    """Raised when a database lookup fails.

    Use for connection errors or query failures.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message,
            status_code=500,
            detail=detail,
        )


class RateLimitError(AppError):
    """Raised when rate limits are exceeded.

    Use when the client has made too many requests.
    """

    def __init__(self, message: str = "Too many requests. Please try again shortly."):
        super().__init__(message, status_code=429)


class UpstreamError(AppError):
    """Raised when an external provider answers with a non-success status.

    The provider status is passed through when it is an HTTP error status,
    otherwise the error is reported as a bad gateway.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        upstream_status: int,
        detail: Optional[str] = None,
    ):
        status_code = upstream_status if 400 <= upstream_status < 600 else 502
        super().__init__(message, status_code=status_code, detail=detail)
        self.provider = provider
        self.upstream_status = upstream_status


class UpstreamTimeoutError(AppError):
    """Raised when the request deadline aborts an external call."""

    def __init__(self, provider: str, message: str):
        super().__init__(message, status_code=504)
        self.provider = provider


class UpstreamUnavailableError(AppError):
    """Raised when an external provider cannot be reached at all."""

    def __init__(self, provider: str, message: str, detail: Optional[str] = None):
        super().__init__(message, status_code=502, detail=detail)
        self.provider = provider


class PaginationOverflowError(AppError):
    """Raised when a paginated listing exceeds the page-count guard."""

    def __init__(self, provider: str, max_pages: int, noun: str = "items"):
        super().__init__(
            f"{provider} returned more than {max_pages} pages of {noun}.",
            status_code=502,
        )
        self.provider = provider
        self.max_pages = max_pages
