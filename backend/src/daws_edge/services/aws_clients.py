"""Shared boto3 client factory with caching."""

from __future__ import annotations

from typing import Any

import boto3

_CLIENT_CACHE: dict[tuple[str, str, str | None], Any] = {}


def _cached(kind: str, service: str, region_name: str | None) -> Any:
    cache_key = (kind, service, region_name)
    if cache_key in _CLIENT_CACHE:
        return _CLIENT_CACHE[cache_key]
    factory = boto3.resource if kind == "resource" else boto3.client
    instance = factory(service, region_name=region_name)  # type: ignore[call-overload]
    _CLIENT_CACHE[cache_key] = instance
    return instance


def get_client(service: str, region_name: str | None = None) -> Any:
    """Return a cached boto3 client for the given service."""
    return _cached("client", service, region_name)


def clear_client_cache() -> None:
    """Clear cached boto3 clients (useful in tests)."""
    _CLIENT_CACHE.clear()


def get_secretsmanager_client(region_name: str | None = None) -> Any:
    return get_client("secretsmanager", region_name=region_name)


def get_dynamodb_resource(region_name: str | None = None) -> Any:
    return _cached("resource", "dynamodb", region_name)
