"""Admin authorization gate for privileged mutations.

The gate yields nothing but permission: it either returns or raises the
error describing which check failed.
"""

from __future__ import annotations

from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from daws_edge.auth.jwt_validator import JWTValidationError
from daws_edge.auth.jwt_validator import TokenClaims
from daws_edge.auth.jwt_validator import decode_and_verify_token
from daws_edge.config import AdminAuthSettings
from daws_edge.db.engine import get_engine
from daws_edge.db.repositories import AdminAllowListRepository
from daws_edge.exceptions import AuthenticationError
from daws_edge.exceptions import AuthorizationError
from daws_edge.exceptions import ConfigurationError
from daws_edge.exceptions import DatabaseError
from daws_edge.exceptions import UpstreamTimeoutError
from daws_edge.services.http_client import Deadline
from daws_edge.services.routing import describe_db_error
from daws_edge.utils.logging import get_logger
from daws_edge.utils.logging import mask_email
from daws_edge.utils.responses import get_header

logger = get_logger(__name__)

TokenVerifier = Callable[..., TokenClaims]

ADMIN_CHECK_TIMED_OUT = "Admin verification timed out."


def get_bearer_token(event: Mapping[str, Any]) -> str:
    """Extract a bearer token; header name and scheme are case-insensitive."""
    header_value = get_header(event, "authorization")
    if not header_value.lower().startswith("bearer "):
        return ""
    return header_value[len("bearer ") :].strip()


def require_admin(
    event: Mapping[str, Any],
    settings: AdminAuthSettings,
    session_factory: Optional[Callable[[], Session]] = None,
    verify_token: TokenVerifier = decode_and_verify_token,
    deadline: Optional[Deadline] = None,
) -> None:
    """Allow the request only for an allow-listed administrator.

    Raises:
        AuthenticationError: Missing or invalid token (401).
        AuthorizationError: No email on the account, or not an admin (403).
        ConfigurationError: Identity provider not configured (500).
        DatabaseError: The allow-list lookup failed (500).
        UpstreamTimeoutError: The request deadline passed before a lookup (504).
    """
    token = get_bearer_token(event)
    if not token:
        raise AuthenticationError("Missing auth token.")

    _check_deadline(deadline, "identity provider")
    try:
        claims = verify_token(token, settings, deadline=deadline)
    except JWTValidationError as exc:
        if exc.reason == "misconfigured":
            raise ConfigurationError(
                "Identity provider is not configured.",
                "SUPABASE_URL or SUPABASE_JWT_SECRET",
            ) from exc
        logger.warning(f"Admin token rejected: {exc.reason}")
        raise AuthenticationError("Invalid auth token.") from exc

    if not claims.sub:
        raise AuthenticationError("Invalid auth token.")

    email = claims.email.strip().lower()
    if not email:
        raise AuthorizationError("Admin access is not available for this account.")

    _check_deadline(deadline, "admin allow-list")
    factory = session_factory or (lambda: Session(get_engine()))
    try:
        with factory() as session:
            allowed = AdminAllowListRepository(session, settings.allowlist_table).is_admin(
                email
            )
    except SQLAlchemyError as exc:
        reason = describe_db_error(exc)
        logger.error(f"Admin allow-list lookup failed: {reason}")
        raise DatabaseError(f"Unable to verify admin access: {reason}") from exc

    if not allowed:
        logger.warning(f"Admin access denied: {mask_email(email)}")
        raise AuthorizationError("Admin access is required for this action.")

    logger.info(f"Admin access granted: {mask_email(email)}")


def _check_deadline(deadline: Optional[Deadline], step: str) -> None:
    if deadline is not None and deadline.expired():
        logger.warning(f"Admin check skipped at {step}: request deadline exceeded")
        raise UpstreamTimeoutError("admin", ADMIN_CHECK_TIMED_OUT)
