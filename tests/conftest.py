"""Pytest configuration and fixtures for backend tests.

This module provides shared fixtures for testing the edge handlers,
including API Gateway events, an in-memory configuration database and a
scriptable HTTP transport standing in for the email, audience and event
providers.
"""

from __future__ import annotations

import base64
import json
import os
import sys
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Optional
from typing import Union
from uuid import uuid4

import pytest

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from daws_edge.services.http_client import HttpRequest  # noqa: E402
from daws_edge.services.http_client import HttpResponse  # noqa: E402

ENV_PREFIXES = (
    'FORM_FORWARDER_',
    'FORM_EMAIL_',
    'RESEND_',
    'MAILCHIMP_',
    'EVENTBRITE_',
    'SUPABASE_',
    'ADMIN_ALLOWLIST_',
    'RATE_LIMIT_',
    'DATABASE_',
)

ScriptedReply = Union[HttpResponse, Exception, Callable[[HttpRequest], HttpResponse]]


# --- Isolation Fixtures ---


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Strip handler configuration from the environment and reset caches."""
    from daws_edge.services.rate_limit import reset_rate_limiter

    for name in list(os.environ):
        if name.startswith(ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)
    reset_rate_limiter()
    yield
    reset_rate_limiter()


# --- Database Fixtures ---


@pytest.fixture
def test_engine():
    """In-memory SQLite holding the routing and admin allow-list tables.

    A static pool keeps the single in-memory database alive across
    sessions opened by the code under test.
    """
    from sqlalchemy import create_engine
    from sqlalchemy import text
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        conn.execute(
            text(
                'CREATE TABLE form_email_routing ('
                ' form_kind TEXT PRIMARY KEY,'
                ' form_label TEXT,'
                ' to_emails TEXT,'
                ' cc_emails TEXT,'
                ' enabled BOOLEAN NOT NULL DEFAULT 1)'
            )
        )
        conn.execute(text('CREATE TABLE job_board_admins (email TEXT PRIMARY KEY)'))

    yield engine

    engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> Callable:
    """Factory opening sessions on the in-memory database."""
    from sqlalchemy.orm import Session

    return lambda: Session(test_engine)


def insert_routing_rule(
    engine,
    form_kind: str,
    to_emails: str,
    cc_emails: str = '',
    form_label: str = '',
    enabled: bool = True,
) -> None:
    from sqlalchemy import text

    with engine.begin() as conn:
        conn.execute(
            text(
                'INSERT INTO form_email_routing'
                ' (form_kind, form_label, to_emails, cc_emails, enabled)'
                ' VALUES (:kind, :label, :to, :cc, :enabled)'
            ),
            {
                'kind': form_kind,
                'label': form_label,
                'to': to_emails,
                'cc': cc_emails,
                'enabled': enabled,
            },
        )


def insert_admin(engine, email: str) -> None:
    from sqlalchemy import text

    with engine.begin() as conn:
        conn.execute(text('INSERT INTO job_board_admins (email) VALUES (:email)'), {'email': email})


# --- API Event Fixtures ---


def make_event(
    body: Any = None,
    method: str = 'POST',
    headers: Optional[dict] = None,
    base64_encoded: bool = False,
    source_ip: str = '203.0.113.10',
) -> dict:
    """Build an API Gateway proxy event.

    Dict and list bodies are JSON encoded; strings are sent as-is.
    """
    if body is None or isinstance(body, str):
        raw_body = body
    else:
        raw_body = json.dumps(body)
    if base64_encoded and raw_body is not None:
        raw_body = base64.b64encode(raw_body.encode('utf-8')).decode('ascii')

    return {
        'httpMethod': method,
        'path': '/',
        'headers': dict(headers or {}),
        'requestContext': {
            'requestId': str(uuid4()),
            'identity': {'sourceIp': source_ip},
        },
        'body': raw_body,
        'isBase64Encoded': base64_encoded,
    }


@pytest.fixture
def api_gateway_event() -> dict:
    """Base POST event from an allowed browser origin."""
    return make_event({}, headers={'Origin': 'https://daws.example.org'})


def response_body(response: dict) -> dict:
    return json.loads(response['body'])


# --- Mock Fixtures ---


class FakeTransport:
    """Scripted stand-in for ``urllib_transport``.

    Replies are consumed in order; an exception reply is raised instead of
    returned. Every request is recorded for assertions.
    """

    def __init__(self, *replies: ScriptedReply) -> None:
        self.replies = list(replies)
        self.requests: list[HttpRequest] = []

    def __call__(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        if not self.replies:
            raise AssertionError(f'Unexpected provider call: {request.method} {request.url}')
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply

    @property
    def call_count(self) -> int:
        return len(self.requests)


def json_reply(status: int, payload: Any, reason: str = '') -> HttpResponse:
    return HttpResponse(status, reason, json.dumps(payload))


@pytest.fixture
def fake_transport() -> Callable[..., FakeTransport]:
    return FakeTransport
