"""Centralized database engine management.

The engine is cached at module level so a warm Lambda container reuses its
connection across invocations.
"""

from __future__ import annotations

import os
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine import make_url

from daws_edge.db.connection import get_database_url

_ENGINE_CACHE: dict[str, Engine] = {}


def get_engine(use_cache: bool = True) -> Engine:
    """Get or create a SQLAlchemy engine.

    Args:
        use_cache: Whether to reuse the engine cached for this container.
    """
    database_url = get_database_url()
    if use_cache and database_url in _ENGINE_CACHE:
        return _ENGINE_CACHE[database_url]

    engine = create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args=_get_connect_args(database_url),
        **_get_pool_settings(database_url),
    )

    if use_cache:
        _ENGINE_CACHE[database_url] = engine
    return engine


def clear_engine_cache() -> None:
    """Dispose and forget cached engines (useful in tests)."""
    for engine in _ENGINE_CACHE.values():
        engine.dispose()
    _ENGINE_CACHE.clear()


def _is_postgres(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "postgresql"


def _get_connect_args(database_url: str) -> dict[str, Any]:
    """Return driver arguments for PostgreSQL: TLS plus connect and statement timeouts."""
    if not _is_postgres(database_url):
        return {}
    statement_timeout_ms = int(os.getenv("DATABASE_STATEMENT_TIMEOUT_MS", "5000"))
    return {
        "sslmode": os.getenv("DATABASE_SSLMODE", "require"),
        "connect_timeout": int(os.getenv("DATABASE_CONNECT_TIMEOUT", "5")),
        "options": f"-c statement_timeout={statement_timeout_ms}",
    }


def _get_pool_settings(database_url: str) -> dict[str, Any]:
    """Return connection pool settings tuned for Lambda's execution model."""
    if not _is_postgres(database_url):
        return {}
    return {
        "pool_size": int(os.getenv("DB_POOL_SIZE", "1")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "0")),
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "300")),
        "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", "10")),
    }
