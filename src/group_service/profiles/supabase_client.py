"""Read-only PostgREST access to the Supabase profile store.

Only equality lookups are needed (a profile by its id), so the client
exposes a single ``fetch_rows`` call. The service-role key bypasses RLS and
must never be logged.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from .errors import SupabaseAuthError, SupabaseError, SupabaseNotFoundError

DEFAULT_TIMEOUT_SECONDS = 10.0


def _error_for(resp: httpx.Response) -> SupabaseError:
    """Map a failed PostgREST response to the matching SupabaseError."""
    body: Any = None
    try:
        body = resp.json()
    except ValueError:
        pass
    fields = body if isinstance(body, dict) else {}

    if resp.status_code in (401, 403):
        cls: type[SupabaseError] = SupabaseAuthError
    elif resp.status_code == 404:
        cls = SupabaseNotFoundError
    else:
        cls = SupabaseError
    return cls(
        status_code=resp.status_code,
        message=fields.get("message") or resp.text,
        code=fields.get("code"),
        details=fields.get("details"),
    )


class SupabaseClient:
    """Service-role reader over ``/rest/v1``.

    An injected ``http_client`` is borrowed and never closed here.
    """

    def __init__(
        self,
        *,
        supabase_url: str,
        service_role_key: str,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not (supabase_url and service_role_key):
            raise ValueError("supabase_url and service_role_key are required")

        self._rest_url = supabase_url.rstrip("/") + "/rest/v1"
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Accept": "application/json",
        }
        self._timeout = timeout_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    async def fetch_rows(
        self,
        table: str,
        *,
        eq: Mapping[str, Any],
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """``GET /rest/v1/{table}?col=eq.value&select=...``."""
        params = {column: f"eq.{value}" for column, value in eq.items()}
        params["select"] = columns
        if limit is not None:
            params["limit"] = str(limit)

        resp = await self._client.get(
            f"{self._rest_url}/{table}",
            params=params,
            headers=self._headers,
            timeout=self._timeout,
        )
        if resp.status_code >= 400:
            raise _error_for(resp)

        rows = resp.json()
        if not isinstance(rows, list):
            raise SupabaseError(status_code=resp.status_code, message="expected a JSON array of rows")
        return rows

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
