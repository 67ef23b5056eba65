"""Tests for the Mailchimp audience client."""

from __future__ import annotations

import base64
import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from conftest import FakeTransport, json_reply  # noqa: E402
from daws_edge.api.schemas import SyncOutcome  # noqa: E402
from daws_edge.services.http_client import Deadline, HttpResponse  # noqa: E402
from daws_edge.services.mailchimp import (  # noqa: E402
    MailchimpClient,
    MailchimpProblem,
    is_duplicate_member,
    parse_problem,
)


def _client(transport: FakeTransport) -> MailchimpClient:
    return MailchimpClient('key-us21', 'us21', 'aud123', 12, transport=transport)


class TestDuplicateDetection:
    def test_member_exists_title(self) -> None:
        assert is_duplicate_member(400, MailchimpProblem(title='Member Exists'))

    def test_detail_match_is_case_insensitive(self) -> None:
        problem = MailchimpProblem(detail='sam@example.com is ALREADY A LIST MEMBER.')
        assert is_duplicate_member(400, problem)

    def test_other_status_is_not_duplicate(self) -> None:
        assert not is_duplicate_member(409, MailchimpProblem(title='Member Exists'))

    def test_other_problem_is_not_duplicate(self) -> None:
        assert not is_duplicate_member(400, MailchimpProblem(title='Invalid Resource'))

    def test_parse_problem_tolerates_garbage(self) -> None:
        assert parse_problem('<html>') == MailchimpProblem()
        assert parse_problem('{"title": 3}') == MailchimpProblem()


class TestMailchimpClient:
    def test_members_url(self) -> None:
        client = _client(FakeTransport())
        assert client.members_url == 'https://us21.api.mailchimp.com/3.0/lists/aud123/members'

    def test_synced(self) -> None:
        transport = FakeTransport(json_reply(200, {'id': 'abc'}))
        result = _client(transport).add_member('sam@example.com', Deadline(25), tags=('website',))

        assert result.outcome is SyncOutcome.SYNCED
        assert result.ok
        request = transport.requests[0]
        assert json.loads(request.body) == {
            'email_address': 'sam@example.com',
            'status': 'subscribed',
            'tags': ['website'],
        }
        scheme, token = request.headers['Authorization'].split(' ')
        assert scheme == 'Basic'
        assert base64.b64decode(token).decode().endswith(':key-us21')

    def test_double_opt_in_is_pending(self) -> None:
        transport = FakeTransport(json_reply(200, {}))
        _client(transport).add_member('sam@example.com', Deadline(25), double_opt_in=True)
        body = json.loads(transport.requests[0].body)
        assert body['status'] == 'pending'
        assert 'tags' not in body

    def test_already_subscribed(self) -> None:
        transport = FakeTransport(json_reply(400, {'title': 'Member Exists', 'detail': '...'}))
        result = _client(transport).add_member('sam@example.com', Deadline(25))
        assert result.outcome is SyncOutcome.ALREADY_SUBSCRIBED
        assert result.ok

    @pytest.mark.parametrize(
        ('reply', 'status', 'message'),
        [
            (json_reply(400, {'title': 'Invalid Resource', 'detail': 'Looks fake'}), 400, 'Looks fake'),
            (json_reply(401, {'title': 'API Key Invalid'}), 401, 'API Key Invalid'),
            (HttpResponse(503, 'Service Unavailable', ''), 503, 'Mailchimp API request failed.'),
        ],
    )
    def test_failed(self, reply: HttpResponse, status: int, message: str) -> None:
        result = _client(FakeTransport(reply)).add_member('sam@example.com', Deadline(25))
        assert result.outcome is SyncOutcome.FAILED
        assert not result.ok
        assert result.status_code == status
        assert result.message == message
