"""Database access for the configuration tables."""

from daws_edge.db.engine import clear_engine_cache
from daws_edge.db.engine import get_engine
from daws_edge.db.tables import admin_allowlist_table
from daws_edge.db.tables import routing_table

__all__ = [
    "admin_allowlist_table",
    "clear_engine_cache",
    "get_engine",
    "routing_table",
]
