"""Utility modules for the edge handlers."""

from daws_edge.utils.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    hash_for_correlation,
    mask_email,
    set_request_context,
)
from daws_edge.utils.parsers import (
    parse_bool,
    parse_csv,
    parse_int_setting,
    to_positive_int,
    to_utc_timestamp,
)
from daws_edge.utils.responses import (
    error_response,
    get_header,
    is_origin_allowed,
    json_response,
    parse_allowed_origins,
    preflight_response,
    resolve_allowed_origin,
)
from daws_edge.utils.validators import (
    is_valid_email,
    normalize_email,
    normalize_email_list,
)

__all__ = [
    "clear_request_context",
    "configure_logging",
    "error_response",
    "get_header",
    "get_logger",
    "hash_for_correlation",
    "is_origin_allowed",
    "is_valid_email",
    "json_response",
    "mask_email",
    "normalize_email",
    "normalize_email_list",
    "parse_allowed_origins",
    "parse_bool",
    "parse_csv",
    "parse_int_setting",
    "preflight_response",
    "resolve_allowed_origin",
    "set_request_context",
    "to_positive_int",
    "to_utc_timestamp",
]
