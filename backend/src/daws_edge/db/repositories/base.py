"""Base repository over a configurable table."""

from __future__ import annotations

from sqlalchemy.orm import Session
from sqlalchemy.sql.expression import TableClause


class BaseRepository:
    """Holds the session and the table construct a repository reads from."""

    def __init__(self, session: Session, table: TableClause):
        """Initialize the repository.

        Args:
            session: SQLAlchemy session for database operations.
            table: The table construct to query.
        """
        self._session = session
        self._table = table

    @property
    def session(self) -> Session:
        """Get the current session."""
        return self._session

    @property
    def table(self) -> TableClause:
        return self._table
