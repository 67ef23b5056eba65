"""JWT validation for Supabase Auth access tokens.

Two verification modes are supported:

- ``SUPABASE_JWT_SECRET`` set: tokens are HS256-signed with the project's
  shared secret.
- otherwise: the signing key is looked up in the project's JWKS document
  (``<SUPABASE_URL>/auth/v1/.well-known/jwks.json``), RS256 or ES256.

SECURITY NOTES:
- Always verify JWT signatures before trusting claims
- Validate issuer and audience to prevent token confusion attacks
- Check token expiration to prevent replay attacks
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any
from typing import Optional

import jwt
from jwt import PyJWKClient
from jwt import PyJWKClientError

from daws_edge.config import AdminAuthSettings
from daws_edge.services.http_client import Deadline
from daws_edge.utils.logging import get_logger

logger = get_logger(__name__)

AUTHENTICATED_AUDIENCE = "authenticated"
ASYMMETRIC_ALGORITHMS = ["RS256", "ES256"]

# Cache for JWKS clients to avoid re-fetching keys on every invocation
_jwks_clients: dict[str, PyJWKClient] = {}
_jwks_client_created_at: dict[str, float] = {}
JWKS_CACHE_TTL = 3600  # 1 hour
JWKS_FETCH_TIMEOUT_SECONDS = 5.0


@dataclass
class TokenClaims:
    """Validated JWT token claims."""

    sub: str
    email: str
    role: str
    exp: int
    raw_claims: dict[str, Any]


class JWTValidationError(Exception):
    """Raised when JWT validation fails."""

    def __init__(self, message: str, reason: str = "invalid_token"):
        super().__init__(message)
        self.message = message
        self.reason = reason


def _get_jwks_client(
    jwks_url: str,
    timeout: float = JWKS_FETCH_TIMEOUT_SECONDS,
) -> PyJWKClient:
    """Get or create a cached JWKS client for the project.

    The key-set fetch timeout applies to the next fetch, so a cached client
    is handed the caller's current timeout.
    """
    now = time.time()
    if jwks_url in _jwks_clients:
        if (now - _jwks_client_created_at.get(jwks_url, 0)) < JWKS_CACHE_TTL:
            client = _jwks_clients[jwks_url]
            client.timeout = timeout
            return client

    client = PyJWKClient(
        jwks_url, cache_keys=True, lifespan=JWKS_CACHE_TTL, timeout=timeout
    )
    _jwks_clients[jwks_url] = client
    _jwks_client_created_at[jwks_url] = now
    return client


def clear_jwks_cache() -> None:
    """Forget cached JWKS clients (useful in tests)."""
    _jwks_clients.clear()
    _jwks_client_created_at.clear()


def _signing_key(
    token: str,
    settings: AdminAuthSettings,
    deadline: Optional[Deadline] = None,
) -> tuple[Any, list[str]]:
    if settings.jwt_secret:
        return settings.jwt_secret, ["HS256"]

    if not settings.jwks_url:
        raise JWTValidationError(
            "SUPABASE_URL or SUPABASE_JWT_SECRET must be set",
            reason="misconfigured",
        )

    timeout = settings.jwks_timeout_ms / 1000
    if deadline is not None:
        timeout = deadline.timeout_for(timeout)
    try:
        client = _get_jwks_client(settings.jwks_url, timeout)
        signing_key = client.get_signing_key_from_jwt(token)
    except PyJWKClientError as exc:
        logger.warning(f"Failed to get signing key: {exc}")
        raise JWTValidationError(
            "Could not retrieve signing key",
            reason="invalid_token",
        ) from exc
    except jwt.PyJWTError as exc:
        raise JWTValidationError(
            "Failed to decode token header",
            reason="invalid_token",
        ) from exc
    return signing_key.key, ASYMMETRIC_ALGORITHMS


def decode_and_verify_token(
    token: str,
    settings: AdminAuthSettings,
    verify_expiration: bool = True,
    deadline: Optional[Deadline] = None,
) -> TokenClaims:
    """Decode and verify a Supabase access token.

    Args:
        token: The JWT token string
        settings: Identity provider settings
        verify_expiration: Whether to verify token expiration (default True)
        deadline: Request deadline capping the key-set fetch timeout

    Returns:
        TokenClaims with validated claims

    Raises:
        JWTValidationError: If token validation fails or the identity
            provider is not configured (``reason="misconfigured"``)
    """
    key, algorithms = _signing_key(token, settings, deadline)

    try:
        decoded = jwt.decode(
            token,
            key,
            algorithms=algorithms,
            audience=AUTHENTICATED_AUDIENCE,
            issuer=settings.issuer or None,
            options={
                "verify_signature": True,
                "verify_exp": verify_expiration,
                "verify_iss": bool(settings.issuer),
                "require": ["sub", "exp"],
            },
        )
    except jwt.ExpiredSignatureError as exc:
        raise JWTValidationError("Token has expired", reason="token_expired") from exc
    except jwt.InvalidIssuerError as exc:
        raise JWTValidationError("Invalid token issuer", reason="invalid_issuer") from exc
    except jwt.InvalidAudienceError as exc:
        raise JWTValidationError("Invalid token audience", reason="invalid_audience") from exc
    except jwt.InvalidSignatureError as exc:
        raise JWTValidationError("Invalid token signature", reason="invalid_signature") from exc
    except jwt.MissingRequiredClaimError as exc:
        raise JWTValidationError(f"Missing required claim: {exc}", reason="invalid_token") from exc
    except jwt.PyJWTError as exc:
        raise JWTValidationError("Failed to decode token", reason="invalid_token") from exc

    return TokenClaims(
        sub=str(decoded.get("sub") or ""),
        email=str(decoded.get("email") or ""),
        role=str(decoded.get("role") or ""),
        exp=int(decoded.get("exp") or 0),
        raw_claims=decoded,
    )
