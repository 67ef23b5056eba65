"""Lightweight table constructs for the configuration tables.

The tables are owned and migrated elsewhere; only the columns read here
are declared. Names are configurable per deployment and may be
schema-qualified (``config.form_email_routing``).
"""

from __future__ import annotations

from sqlalchemy import column
from sqlalchemy import table
from sqlalchemy.sql.expression import TableClause


def _split_name(name: str) -> tuple[str | None, str]:
    schema, _, table_name = name.rpartition(".")
    return (schema or None), table_name


def routing_table(name: str) -> TableClause:
    """Form email routing rules, one row per form kind."""
    schema, table_name = _split_name(name)
    return table(
        table_name,
        column("form_kind"),
        column("form_label"),
        column("to_emails"),
        column("cc_emails"),
        column("enabled"),
        schema=schema,
    )


def admin_allowlist_table(name: str) -> TableClause:
    """Email addresses allowed to perform admin actions."""
    schema, table_name = _split_name(name)
    return table(table_name, column("email"), schema=schema)
