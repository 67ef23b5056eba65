"""Database connection helpers for Lambda runtime."""

from __future__ import annotations

import os
from urllib.parse import quote_plus

from daws_edge.exceptions import ConfigurationError
from daws_edge.services.secrets import get_secret_json


def get_database_url() -> str:
    """Resolve the database URL from env or Secrets Manager.

    ``DATABASE_URL`` wins. Otherwise ``DATABASE_SECRET_ARN`` must point at a
    JSON secret with ``username``/``password``/``host`` fields; host, port,
    name and username can be overridden from the environment.

    Raises:
        ConfigurationError: When neither source is configured or the
            secret lacks connection fields.
    """
    database_url = (os.getenv("DATABASE_URL") or "").strip()
    if database_url:
        return database_url

    secret_arn = (os.getenv("DATABASE_SECRET_ARN") or "").strip()
    if not secret_arn:
        raise ConfigurationError(
            "Database credentials are not configured.",
            "DATABASE_URL or DATABASE_SECRET_ARN",
        )

    secret = get_secret_json(secret_arn)
    username = (
        os.getenv("DATABASE_USERNAME") or secret.get("username") or secret.get("user")
    )
    password = secret.get("password")
    host = os.getenv("DATABASE_HOST") or secret.get("host")
    port = os.getenv("DATABASE_PORT") or secret.get("port") or 5432
    database = (
        os.getenv("DATABASE_NAME")
        or secret.get("dbname")
        or secret.get("database")
        or "postgres"
    )

    if not username or not host or not password:
        raise ConfigurationError(
            "Database secret is missing connection fields.", "DATABASE_SECRET_ARN"
        )

    return (
        "postgresql+psycopg://"
        f"{quote_plus(str(username))}:{quote_plus(str(password))}"
        f"@{host}:{port}/{database}"
    )
