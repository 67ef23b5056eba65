"""Tests for the shared request pipeline."""

from __future__ import annotations

import base64
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from conftest import make_event, response_body  # noqa: E402
from daws_edge.api.request import (  # noqa: E402
    HandlerResult,
    decode_body_text,
    get_client_id,
    handle_request,
    parse_json_object,
    read_body_bytes,
)
from daws_edge.config import EndpointSettings  # noqa: E402
from daws_edge.exceptions import PayloadTooLargeError, ValidationError  # noqa: E402
from daws_edge.services.rate_limit import RateLimiter  # noqa: E402

ENDPOINT = EndpointSettings(
    name='test',
    allowed_origins=('https://daws.example.org',),
    max_body_bytes=64,
    rate_limit_max=2,
    rate_limit_window_ms=60_000,
    request_budget_ms=1_000,
)


def _ok(request) -> HandlerResult:
    return HandlerResult(200, {'ok': True, 'echo': request.payload})


class TestGetClientId:
    def test_forwarded_for_first_entry(self) -> None:
        event = make_event(headers={'X-Forwarded-For': ' 198.51.100.7 , 10.0.0.1'})
        assert get_client_id(event) == '198.51.100.7'

    def test_real_ip(self) -> None:
        assert get_client_id(make_event(headers={'x-real-ip': '198.51.100.8'})) == '198.51.100.8'

    def test_source_ip(self) -> None:
        assert get_client_id(make_event(source_ip='198.51.100.9')) == '198.51.100.9'

    def test_unknown(self) -> None:
        assert get_client_id({'headers': {}, 'requestContext': {}}) == 'unknown'


class TestBodyParsing:
    def test_decode_base64(self) -> None:
        event = make_event({'a': 1}, base64_encoded=True)
        assert read_body_bytes(event, 64) == b'{"a": 1}'

    def test_decode_invalid_base64(self) -> None:
        with pytest.raises(ValidationError):
            read_body_bytes({'body': '@@@', 'isBase64Encoded': True}, 64)

    def test_invalid_base64_over_ceiling_is_too_large(self) -> None:
        with pytest.raises(PayloadTooLargeError):
            read_body_bytes({'body': '@' * 200, 'isBase64Encoded': True}, 64)

    def test_binary_body_over_ceiling_is_too_large(self) -> None:
        body = base64.b64encode(b'\xff' * 100).decode('ascii')
        with pytest.raises(PayloadTooLargeError):
            read_body_bytes({'body': body, 'isBase64Encoded': True}, 64)

    def test_missing_body(self) -> None:
        assert read_body_bytes({'body': None}, 64) == b''

    def test_lone_surrogate_body_is_invalid(self) -> None:
        raw = read_body_bytes({'body': '{"email": "\ud800a@b.co"}'}, 64)
        with pytest.raises(ValidationError) as exc_info:
            decode_body_text(raw)
        assert exc_info.value.message == 'Invalid request payload.'

    @pytest.mark.parametrize('raw', ['', 'nope', '[]', '"text"', '3'])
    def test_non_object_rejected(self, raw: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_json_object(raw)
        assert exc_info.value.message == 'Invalid request payload.'


class TestHandleRequest:
    def test_runs_logic_with_payload(self) -> None:
        event = make_event({'a': 1}, headers={'Origin': 'https://daws.example.org'})
        response = handle_request(event, None, ENDPOINT, _ok, limiter=RateLimiter())
        assert response['statusCode'] == 200
        assert response_body(response) == {'ok': True, 'echo': {'a': 1}}

    def test_origin_check_can_be_deferred(self) -> None:
        event = make_event({'a': 1}, headers={'Origin': 'https://other.example'})
        response = handle_request(event, None, ENDPOINT, _ok, enforce_origin=False, limiter=RateLimiter())
        assert response['statusCode'] == 200
        assert response['headers']['Access-Control-Allow-Origin'] == 'https://daws.example.org'

    def test_preflight_skips_rate_limit(self, mocker) -> None:
        limiter = mocker.Mock()
        response = handle_request(make_event(method='OPTIONS'), None, ENDPOINT, _ok, limiter=limiter)
        assert response['statusCode'] == 200
        limiter.allow.assert_not_called()

    def test_rate_limit_before_body_checks(self) -> None:
        limiter = RateLimiter()
        event = make_event('x' * 100, headers={'Origin': 'https://daws.example.org'})
        statuses = [handle_request(event, None, ENDPOINT, _ok, limiter=limiter)['statusCode'] for _ in range(3)]
        assert statuses == [413, 413, 429]

    def test_error_fields_added(self) -> None:
        event = make_event(method='PUT')
        response = handle_request(event, None, ENDPOINT, _ok, error_fields={'status': 'failed'})
        assert response_body(response) == {'ok': False, 'message': 'Method not allowed.', 'status': 'failed'}

    def test_lowercase_method(self) -> None:
        event = make_event({}, method='post', headers={'Origin': 'https://daws.example.org'})
        response = handle_request(event, None, ENDPOINT, _ok, limiter=RateLimiter())
        assert response['statusCode'] == 200

    def test_oversized_binary_body_is_too_large(self) -> None:
        event = make_event(headers={'Origin': 'https://daws.example.org'})
        event['body'] = base64.b64encode(b'\xff' * 100).decode('ascii')
        event['isBase64Encoded'] = True
        response = handle_request(event, None, ENDPOINT, _ok, limiter=RateLimiter())
        assert response['statusCode'] == 413
        assert response_body(response)['message'] == 'Request payload is too large.'

    def test_lone_surrogate_is_bad_request(self) -> None:
        event = make_event('{"email": "\ud800a@b.co"}', headers={'Origin': 'https://daws.example.org'})
        response = handle_request(event, None, ENDPOINT, _ok, limiter=RateLimiter())
        assert response['statusCode'] == 400
        assert response_body(response)['message'] == 'Invalid request payload.'

    def test_preflight_is_not_cacheable(self) -> None:
        response = handle_request(make_event(method='OPTIONS'), None, ENDPOINT, _ok, limiter=RateLimiter())
        assert response['headers']['Cache-Control'] == 'no-store'
        assert response['headers']['X-Content-Type-Options'] == 'nosniff'
