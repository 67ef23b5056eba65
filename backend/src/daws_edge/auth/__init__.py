"""Authentication helpers for admin-only actions."""

from daws_edge.auth.admin import get_bearer_token
from daws_edge.auth.admin import require_admin
from daws_edge.auth.jwt_validator import (
    JWTValidationError,
    TokenClaims,
    decode_and_verify_token,
)

__all__ = [
    "JWTValidationError",
    "TokenClaims",
    "decode_and_verify_token",
    "get_bearer_token",
    "require_admin",
]
