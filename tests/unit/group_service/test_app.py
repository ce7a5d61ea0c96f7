"""HTTP surface of the group service.

Tests:
  1. create_app wiring (state, health, root)
  2. POST /create-group status codes and response contract
  3. Session readiness gating
  4. Request-ID propagation
"""

from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from group_service import GroupServiceSettings, create_app
from group_service.inmemory import InMemoryMessagingPlatform
from group_service.profiles import ProfileEnricher, SupabaseClient
from group_service.telegram.session import SessionUnavailableError

GROUP_ID = '4815162342'


def _settings(**overrides) -> GroupServiceSettings:
    defaults = dict(
        environment='local',
        membership_settle_seconds=0,
        poll_interval_seconds=0,
        poll_max_attempts=1,
        summary_delay_seconds=0,
    )
    defaults.update(overrides)
    return GroupServiceSettings(**defaults)


def _app(platform, **kwargs):
    return create_app(_settings(), platform=platform, enricher=ProfileEnricher(None), **kwargs)


def _body(**overrides) -> dict:
    body = {
        'listing_id': '7f3c2a91-5b1e-4d0a-9c8e-000000000001',
        'owner_telegram_id': 111,
        'renter_telegram_id': '222',
        'manager_telegram_id': 1000,
        'listing_title': 'Студия у метро',
        'owner_username': '@owner_anna',
        'renter_username': 'renter_boris',
    }
    body.update(overrides)
    return body


class UnavailableSession:
    """Session stand-in whose connection always fails."""

    is_ready = False

    def __init__(self):
        self.disconnected = False

    async def ensure_ready(self):
        raise SessionUnavailableError('Telegram session is not authorized')

    async def disconnect(self):
        self.disconnected = True


# ── App wiring ───────────────────────────────────────────────────────


class TestCreateApp:
    def test_settings_and_deps_on_state(self, platform):
        settings = _settings()
        app = create_app(settings, platform=platform)

        assert app.state.settings is settings
        assert app.state.deps.platform is platform

    def test_local_without_credentials_uses_inmemory_platform(self):
        app = create_app(_settings())

        assert isinstance(app.state.deps.platform, InMemoryMessagingPlatform)
        assert app.state.deps.session is None

    def test_non_local_without_credentials_is_rejected(self):
        with pytest.raises(ValueError, match='TELEGRAM_MANAGER_API_ID'):
            create_app(_settings(environment='production'))

    def test_health(self, platform):
        with TestClient(_app(platform)) as client:
            resp = client.get('/health')

        assert resp.status_code == 200
        assert resp.json() == {'status': 'ok', 'clientReady': True}

    def test_root_lists_endpoints(self, platform):
        with TestClient(_app(platform)) as client:
            data = client.get('/').json()

        assert data['service'] == 'renty-mtproto-service'
        assert data['endpoints']['createGroup'] == '/create-group'


# ── POST /create-group ───────────────────────────────────────────────


class TestCreateGroup:
    def test_success(self, platform):
        with TestClient(_app(platform)) as client:
            resp = client.post('/create-group', json=_body())

        assert resp.status_code == 200
        assert resp.json() == {
            'success': True,
            'chat_id': GROUP_ID,
            'chat_title': 'Чат #7f3c2a91',
            'invite_link': f'https://t.me/+inmemory{GROUP_ID}',
        }
        assert len(platform.sent_messages) == 2

    def test_invite_link_omitted_when_export_fails(self, owner, renter):
        platform = InMemoryMessagingPlatform(known=[owner, renter], invite_fails=True)

        with TestClient(_app(platform)) as client:
            data = client.post('/create-group', json=_body()).json()

        assert data['success'] is True
        assert 'invite_link' not in data

    @pytest.mark.parametrize(
        'field',
        ['listing_id', 'owner_telegram_id', 'renter_telegram_id', 'manager_telegram_id'],
    )
    def test_missing_field_is_400(self, platform, field):
        with TestClient(_app(platform)) as client:
            resp = client.post('/create-group', json=_body(**{field: None}))

        assert resp.status_code == 400
        data = resp.json()
        assert data['error'].startswith('Missing required parameters:')
        assert data['message'] == f'Missing: {field}'
        assert platform.calls == []

    def test_blank_id_is_400(self, platform):
        with TestClient(_app(platform)) as client:
            resp = client.post('/create-group', json=_body(owner_telegram_id='  '))

        assert resp.status_code == 400

    def test_creation_failure_is_500(self, owner, renter):
        platform = InMemoryMessagingPlatform(known=[owner, renter], create_fails=True)

        with TestClient(_app(platform)) as client:
            resp = client.post('/create-group', json=_body())

        assert resp.status_code == 500
        assert resp.json()['error'] == 'Failed to create group'
        assert 'CHAT_INVALID' in resp.json()['message']

    def test_unresolvable_id_is_500(self, platform):
        with TestClient(_app(platform)) as client:
            resp = client.post('/create-group', json=_body(renter_telegram_id='renter'))

        assert resp.status_code == 500
        assert resp.json()['error'] == 'Failed to create group'

    def test_unexpected_error_is_500_with_error_body(self, platform, monkeypatch):
        async def boom(request):
            raise RuntimeError('event loop closed')

        app = _app(platform)
        monkeypatch.setattr(app.state.deps.service, 'provision', boom)

        with TestClient(app) as client:
            resp = client.post('/create-group', json=_body())

        assert resp.status_code == 500
        assert resp.json() == {
            'error': 'Failed to create group',
            'message': 'event loop closed',
        }

    def test_malformed_profile_store_url_still_succeeds(self, platform):
        enricher = ProfileEnricher(SupabaseClient(
            supabase_url='https://proj.supabase.co:badport',
            service_role_key='svc-key',
        ))
        app = create_app(_settings(), platform=platform, enricher=enricher)

        with TestClient(app) as client:
            resp = client.post('/create-group', json=_body(owner_profile_id='p1'))

        assert resp.status_code == 200
        assert resp.json()['success'] is True
        texts = [text for _, text in platform.sent_messages]
        assert len(texts) == 2
        assert 'Участники чата' in texts[1]


# ── Session gating ───────────────────────────────────────────────────


class TestSessionGating:
    def test_unavailable_session_is_503(self, platform):
        session = UnavailableSession()

        with TestClient(_app(platform, session=session)) as client:
            health = client.get('/health').json()
            resp = client.post('/create-group', json=_body())

        assert health['clientReady'] is False
        assert resp.status_code == 503
        assert resp.json()['error'] == 'Telegram session unavailable'
        assert not any(c[0] == 'create_chat' for c in platform.calls)
        assert session.disconnected is True


# ── Request correlation ──────────────────────────────────────────────


class TestRequestId:
    def test_generated_when_absent(self, platform):
        with TestClient(_app(platform)) as client:
            resp = client.get('/health')

        assert resp.headers['x-request-id']

    def test_incoming_id_is_echoed(self, platform):
        rid = str(uuid.uuid4())

        with TestClient(_app(platform)) as client:
            resp = client.get('/health', headers={'X-Request-ID': rid})

        assert resp.headers['x-request-id'] == rid
