"""Structured logging processors."""
from __future__ import annotations

from group_service.observability.logging import _add_request_id, _redact_secrets, request_id_ctx


def test_secrets_are_redacted():
    event = _redact_secrets(None, 'info', {
        'event': 'telegram_ready',
        'api_hash': 'abcdef',
        'session_string': '1Aa...',
        'group_id': '4815162342',
    })

    assert event['api_hash'] == '***'
    assert event['session_string'] == '***'
    assert event['group_id'] == '4815162342'


def test_request_id_added_from_context():
    token = request_id_ctx.set('req-12345678')
    try:
        event = _add_request_id(None, 'info', {'event': 'x'})
    finally:
        request_id_ctx.reset(token)

    assert event['request_id'] == 'req-12345678'


def test_no_request_id_outside_requests():
    assert 'request_id' not in _add_request_id(None, 'info', {'event': 'x'})
