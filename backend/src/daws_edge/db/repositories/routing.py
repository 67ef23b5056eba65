"""Repository for form email routing rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from daws_edge.db.repositories.base import BaseRepository
from daws_edge.db.tables import routing_table


@dataclass(frozen=True)
class RoutingRule:
    """One routing row as stored; recipients are not yet normalized."""

    form_kind: str
    form_label: str
    to_emails: Any
    cc_emails: Any
    enabled: bool


class RoutingRuleRepository(BaseRepository):
    """Read-only access to the routing table."""

    def __init__(self, session: Session, table_name: str = "form_email_routing"):
        super().__init__(session, routing_table(table_name))

    def find_by_form_kind(self, form_kind: str) -> Optional[RoutingRule]:
        """Return the rule for ``form_kind``, or None when no row exists.

        Raises:
            sqlalchemy.exc.MultipleResultsFound: More than one row matches.
        """
        columns = self.table.c
        query = select(
            columns.form_label,
            columns.to_emails,
            columns.cc_emails,
            columns.enabled,
        ).where(columns.form_kind == form_kind)
        row = self.session.execute(query).one_or_none()
        if row is None:
            return None
        return RoutingRule(
            form_kind=form_kind,
            form_label=(row.form_label or "").strip(),
            to_emails=row.to_emails,
            cc_emails=row.cc_emails,
            enabled=bool(row.enabled),
        )
