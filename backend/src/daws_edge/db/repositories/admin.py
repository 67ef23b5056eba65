"""Repository for the administrator allow-list."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy import select
from sqlalchemy.orm import Session

from daws_edge.db.repositories.base import BaseRepository
from daws_edge.db.tables import admin_allowlist_table


class AdminAllowListRepository(BaseRepository):
    """Membership checks against the admin allow-list table."""

    def __init__(self, session: Session, table_name: str = "job_board_admins"):
        super().__init__(session, admin_allowlist_table(table_name))

    def is_admin(self, email: str) -> bool:
        """Return True when ``email`` is on the allow-list (case-insensitive)."""
        query = (
            select(self.table.c.email)
            .where(func.lower(self.table.c.email) == email.strip().lower())
            .limit(1)
        )
        return self.session.execute(query).first() is not None
