"""Tests for the Eventbrite client and event form builder."""

from __future__ import annotations

import sys
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from conftest import FakeTransport, json_reply  # noqa: E402
from daws_edge.api.schemas import EventPayload  # noqa: E402
from daws_edge.exceptions import (  # noqa: E402
    PaginationOverflowError,
    UpstreamError,
    ValidationError,
)
from daws_edge.services.eventbrite import (  # noqa: E402
    EventbriteClient,
    build_event_form,
    dedupe_events,
    error_message,
)
from daws_edge.services.http_client import Deadline, HttpResponse  # noqa: E402

API = 'https://www.eventbriteapi.com/v3'


def _page(events: list, page: int, has_more: bool, page_count=None) -> HttpResponse:
    pagination = {'page_number': page, 'has_more_items': has_more}
    if page_count is not None:
        pagination['page_count'] = page_count
    return json_reply(200, {'events': events, 'pagination': pagination})


def _client(transport: FakeTransport, max_pages: int = 20) -> EventbriteClient:
    return EventbriteClient('token', API, 15, page_size=2, max_pages=max_pages, transport=transport)


class TestDedupeEvents:
    def test_first_occurrence_wins(self) -> None:
        events = [{'id': '1', 'n': 'a'}, {'id': '2'}, {'id': '1', 'n': 'b'}]
        assert dedupe_events(events) == [{'id': '1', 'n': 'a'}, {'id': '2'}]

    def test_drops_rows_without_id_or_not_objects(self) -> None:
        assert dedupe_events([{'name': 'x'}, 'junk', None, {'id': ''}, {'id': 7}]) == [{'id': 7}]


class TestErrorMessage:
    def test_error_description(self) -> None:
        response = json_reply(400, {'error': 'ARGUMENTS_ERROR', 'error_description': 'Bad start'})
        assert error_message(response) == 'Eventbrite API error: Bad start'

    def test_error_code(self) -> None:
        assert error_message(json_reply(404, {'error': 'NOT_FOUND'})) == 'Eventbrite API error: NOT_FOUND'

    def test_reason_phrase(self) -> None:
        response = HttpResponse(502, 'Bad Gateway', '<html>')
        assert error_message(response) == 'Eventbrite API error: Bad Gateway'


class TestListOrganizationEvents:
    def test_single_page(self) -> None:
        transport = FakeTransport(_page([{'id': '1'}], 1, False))
        events = _client(transport).list_organization_events('org1', Deadline(25))

        assert events == [{'id': '1'}]
        url = urlsplit(transport.requests[0].url)
        assert url.path == '/v3/organizations/org1/events/'
        assert parse_qs(url.query) == {
            'order_by': ['start_desc'],
            'expand': ['venue,ticket_classes'],
            'page': ['1'],
            'page_size': ['2'],
        }
        assert transport.requests[0].headers['Authorization'] == 'Bearer token'

    def test_union_of_pages_deduplicated(self) -> None:
        transport = FakeTransport(
            _page([{'id': '1'}, {'id': '2'}], 1, True, 3),
            _page([{'id': '2'}, {'id': '3'}], 2, True, 3),
            _page([{'id': '4'}], 3, False, 3),
        )
        events = _client(transport).list_organization_events('org1', Deadline(25))

        assert [event['id'] for event in events] == ['1', '2', '3', '4']
        assert transport.call_count == 3

    def test_stops_at_reported_page_count(self) -> None:
        transport = FakeTransport(
            _page([{'id': '1'}], 1, True, 2),
            _page([{'id': '2'}], 2, True, 2),
        )
        events = _client(transport).list_organization_events('org1', Deadline(25))
        assert len(events) == 2
        assert transport.call_count == 2

    def test_overflow(self) -> None:
        transport = FakeTransport(*[_page([{'id': str(n)}], n, True) for n in range(1, 4)])

        with pytest.raises(PaginationOverflowError) as exc_info:
            _client(transport, max_pages=3).list_organization_events('org1', Deadline(25))

        assert exc_info.value.message == 'Eventbrite returned more than 3 pages of events.'
        assert exc_info.value.status_code == 502
        assert transport.call_count == 3

    def test_page_failure(self) -> None:
        transport = FakeTransport(
            _page([{'id': '1'}], 1, True),
            json_reply(401, {'error': 'INVALID_AUTH', 'error_description': 'Token invalid'}),
        )
        with pytest.raises(UpstreamError) as exc_info:
            _client(transport).list_organization_events('org1', Deadline(25))

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == 'Eventbrite API error: Token invalid'


class TestBuildEventForm:
    def _event(self, **overrides) -> EventPayload:
        values = {
            'title': 'DAWS Meetup',
            'startAt': '2025-03-01T18:00:00+11:00',
            'endAt': '2025-03-01T21:00:00+11:00',
        }
        values.update(overrides)
        return EventPayload.model_validate(values)

    def test_fields(self) -> None:
        form = build_event_form(self._event(), 'Australia/Sydney', 'AUD')
        assert form == {
            'event.name.html': 'DAWS Meetup',
            'event.description.html': 'DAWS Meetup',
            'event.start.utc': '2025-03-01T07:00:00Z',
            'event.start.timezone': 'Australia/Sydney',
            'event.end.utc': '2025-03-01T10:00:00Z',
            'event.end.timezone': 'Australia/Sydney',
            'event.currency': 'AUD',
            'event.online_event': 'true',
            'event.listed': 'true',
        }

    def test_naive_times_use_event_timezone(self) -> None:
        event = self._event(
            timezone='Europe/London',
            startAt='2025-07-01T18:00:00',
            endAt='2025-07-01T20:00:00',
        )
        form = build_event_form(event, 'Australia/Sydney', 'AUD')
        assert form['event.start.utc'] == '2025-07-01T17:00:00Z'
        assert form['event.start.timezone'] == 'Europe/London'

    def test_generated_description(self) -> None:
        form = build_event_form(self._event(description='Talks & pizza'), 'Australia/Sydney', 'AUD')
        assert form['event.description.html'] == '<p>Talks &amp; pizza</p>'

    @pytest.mark.parametrize(
        'overrides',
        [{'title': '  '}, {'startAt': None}, {'endAt': 'tomorrow evening'}],
    )
    def test_missing_required_fields(self, overrides: dict) -> None:
        with pytest.raises(ValidationError) as exc_info:
            build_event_form(self._event(**overrides), 'Australia/Sydney', 'AUD')
        assert exc_info.value.message == 'Event title, startAt, and endAt are required.'

    def test_unknown_timezone(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            build_event_form(self._event(timezone='Mars/Olympus'), 'Australia/Sydney', 'AUD')
        assert exc_info.value.status_code == 400


class TestCreateAndUpdate:
    def test_create_posts_form_to_organization(self) -> None:
        transport = FakeTransport(json_reply(200, {'id': 'ev1', 'url': 'https://eventbrite.com/e/ev1'}))
        synced = _client(transport).create_event('org1', {'event.name.html': 'X'}, Deadline(25))

        assert synced.to_dict() == {'id': 'ev1', 'url': 'https://eventbrite.com/e/ev1'}
        request = transport.requests[0]
        assert request.method == 'POST'
        assert request.url == f'{API}/organizations/org1/events/'
        assert request.headers['Content-Type'] == 'application/x-www-form-urlencoded'
        assert parse_qs(request.body.decode()) == {'event.name.html': ['X']}

    def test_update_posts_to_event(self) -> None:
        transport = FakeTransport(json_reply(200, {'id': 'ev1'}))
        synced = _client(transport).update_event('ev1', {'event.name.html': 'X'}, Deadline(25))

        assert synced.id == 'ev1'
        assert synced.url is None
        assert transport.requests[0].url == f'{API}/events/ev1/'
