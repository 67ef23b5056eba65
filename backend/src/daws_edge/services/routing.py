"""Routing rule lookup for forwarded form submissions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from typing import Optional
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from daws_edge.api.schemas import FormKind
from daws_edge.db.engine import get_engine
from daws_edge.db.repositories import RoutingRule
from daws_edge.db.repositories import RoutingRuleRepository
from daws_edge.exceptions import DatabaseError
from daws_edge.utils.logging import get_logger
from daws_edge.utils.validators import merge_email_lists
from daws_edge.utils.validators import normalize_email_list

logger = get_logger(__name__)

SessionFactory = Callable[[], Session]

NO_ACTIVE_RULE = "No active routing rule found for this form type."
NO_TO_RECIPIENTS = "Routing rule does not have any valid To recipients."


@dataclass(frozen=True)
class Recipients:
    form_label: str
    to: tuple[str, ...]
    cc: tuple[str, ...]


@dataclass(frozen=True)
class RoutingDecision:
    """Either recipients to email or the reason the submission is skipped."""

    recipients: Optional[Recipients] = None
    skip_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.recipients is None


def describe_db_error(exc: SQLAlchemyError) -> str:
    """Short, single-line description of a database failure."""
    original = getattr(exc, "orig", None)
    text = str(original if original is not None else exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


def _default_session() -> Session:
    return Session(get_engine())


def load_routing_rule(
    form_kind: FormKind,
    table_name: str,
    session_factory: Optional[SessionFactory] = None,
) -> Optional[RoutingRule]:
    """Read the routing row for ``form_kind``.

    Raises:
        DatabaseError: The lookup failed.
        ConfigurationError: The database is not configured.
    """
    factory = session_factory or _default_session
    try:
        with factory() as session:
            return RoutingRuleRepository(session, table_name).find_by_form_kind(
                form_kind.value
            )
    except SQLAlchemyError as exc:
        reason = describe_db_error(exc)
        logger.error(f"Routing rule lookup failed: {reason}")
        raise DatabaseError(
            f"Unable to load form routing settings: {reason}", detail=str(exc)
        ) from exc


def resolve_recipients(
    rule: Optional[RoutingRule],
    form_kind: FormKind,
    default_cc: Sequence[str] = (),
) -> RoutingDecision:
    """Turn a routing row into normalized recipients.

    A missing or disabled rule, or one without any valid "to" address, is a
    skip rather than an error; CC recipients alone never make a submission
    deliverable.
    """
    if rule is None or not rule.enabled:
        return RoutingDecision(skip_reason=NO_ACTIVE_RULE)

    to = normalize_email_list(rule.to_emails)
    if not to:
        return RoutingDecision(skip_reason=NO_TO_RECIPIENTS)

    cc = merge_email_lists(normalize_email_list(rule.cc_emails), default_cc)
    return RoutingDecision(
        recipients=Recipients(
            form_label=rule.form_label or form_kind.value,
            to=tuple(to),
            cc=tuple(cc),
        )
    )
