"""Profile store lookups and profile formatting."""
from __future__ import annotations

from typing import Any

import httpx
import pytest

from group_service.profiles import ProfileEnricher, SupabaseClient
from group_service.profiles.enricher import ELLIPSIS, FREE_TEXT_LIMIT, format_profile, truncate
from group_service.profiles.errors import SupabaseAuthError
from group_service.settings import GroupServiceSettings


def _enricher(http_client: httpx.AsyncClient) -> ProfileEnricher:
    client = SupabaseClient(
        supabase_url='https://example.supabase.co',
        service_role_key='svc-key',
        http_client=http_client,
    )
    return ProfileEnricher(client)


# ── Fetch ────────────────────────────────────────────────────────────


class TestFetchProfile:
    @pytest.mark.asyncio
    async def test_builds_postgrest_query(self):
        seen: dict[str, Any] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            seen['url'] = str(request.url)
            seen['headers'] = dict(request.headers)
            return httpx.Response(200, json=[{'id': 'p1', 'role': 'owner'}])

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            profile = await _enricher(http_client).fetch_profile('p1')

        assert profile == {'id': 'p1', 'role': 'owner'}
        assert seen['url'].startswith('https://example.supabase.co/rest/v1/profiles?')
        assert 'id=eq.p1' in seen['url']
        assert 'limit=1' in seen['url']
        assert seen['headers']['apikey'] == 'svc-key'
        assert seen['headers']['authorization'] == 'Bearer svc-key'

    @pytest.mark.asyncio
    async def test_empty_result_is_none(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            assert await _enricher(http_client).fetch_profile('p1') is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize('status', [401, 404, 500])
    async def test_non_2xx_is_none(self, status):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={'message': 'nope'})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            assert await _enricher(http_client).fetch_profile('p1') is None

    @pytest.mark.asyncio
    async def test_transport_error_is_none(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError('connection refused', request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            assert await _enricher(http_client).fetch_profile('p1') is None

    @pytest.mark.asyncio
    async def test_malformed_store_url_is_none(self):
        enricher = ProfileEnricher(SupabaseClient(
            supabase_url='https://proj.supabase.co:badport',
            service_role_key='svc-key',
        ))

        assert await enricher.fetch_profile('p1') is None
        await enricher.aclose()

    @pytest.mark.asyncio
    async def test_unconfigured_store_is_disabled(self):
        enricher = ProfileEnricher.from_settings(GroupServiceSettings())

        assert enricher.enabled is False
        assert await enricher.fetch_profile('p1') is None
        await enricher.aclose()


class TestSupabaseClientErrors:
    @pytest.mark.asyncio
    async def test_auth_error_maps_to_exception(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={'message': 'Invalid API key', 'code': '401'})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = SupabaseClient(
                supabase_url='https://example.supabase.co',
                service_role_key='bad',
                http_client=http_client,
            )
            with pytest.raises(SupabaseAuthError) as exc_info:
                await client.fetch_rows('profiles', eq={'id': 'p1'})

        assert exc_info.value.status_code == 401
        assert 'bad' not in str(exc_info.value)


# ── Format ───────────────────────────────────────────────────────────


class TestFormatProfile:
    def test_owner_fields(self):
        text = format_profile({
            'role': 'owner',
            'living_situation': 'Живу отдельно',
            'habits': ['non_smoking', 'no_pets'],
            'rental_history': '5 лет сдаю',
            'tenant_preferences': 'Без вечеринок',
            'about_me': 'ignored for owners',
        })

        assert text.splitlines() == [
            'Роль: арендодатель',
            'Проживание: Живу отдельно',
            'Привычки: не курит, без домашних животных',
            'Опыт аренды: 5 лет сдаю',
            'Пожелания к арендатору: Без вечеринок',
        ]

    def test_renter_about_me(self):
        text = format_profile({'role': 'renter', 'about_me': 'Студент'})

        assert text.splitlines() == ['Роль: арендатор', 'О себе: Студент']

    def test_absent_fields_are_omitted(self):
        assert format_profile({'id': 'p1', 'unknown': 'x'}) == ''

    def test_free_text_is_truncated(self):
        text = format_profile({'role': 'renter', 'about_me': 'а' * 500})

        about = text.splitlines()[-1]
        assert about.endswith(ELLIPSIS)
        assert len(about) == len('О себе: ') + FREE_TEXT_LIMIT + len(ELLIPSIS)

    def test_html_is_escaped(self):
        text = format_profile({'living_situation': '<b>loft</b>'})

        assert '&lt;b&gt;loft&lt;/b&gt;' in text

    def test_truncate_short_text_unchanged(self):
        assert truncate('коротко') == 'коротко'
