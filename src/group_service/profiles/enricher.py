"""Best-effort participant profile enrichment for the summary message.

The profile store is optional. Any failure (unconfigured, transport error,
non-2xx, empty result) yields None and the summary is sent without a profile
section.
"""

from __future__ import annotations

from html import escape
from typing import Any

import httpx

from ..observability.logging import get_logger
from .supabase_client import SupabaseClient

logger = get_logger(__name__)

FREE_TEXT_LIMIT = 200
ELLIPSIS = "…"

_ROLE_LABELS = {
    "owner": "арендодатель",
    "renter": "арендатор",
}

_HABIT_LABELS = {
    "smoking": "курит",
    "non_smoking": "не курит",
    "pets": "есть домашние животные",
    "no_pets": "без домашних животных",
    "early_bird": "жаворонок",
    "night_owl": "сова",
    "quiet": "тихий образ жизни",
    "remote_work": "работает из дома",
}


def truncate(text: str, limit: int = FREE_TEXT_LIMIT) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + ELLIPSIS


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _habits(value: Any) -> str | None:
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple)):
        items = [str(part).strip() for part in value]
    else:
        return None
    labels = [_HABIT_LABELS.get(item, item) for item in items if item]
    return ", ".join(labels) or None


def format_profile(profile: dict[str, Any]) -> str:
    """Render recognised profile attributes as HTML-safe lines."""
    lines: list[str] = []
    role = _text(profile.get("role"))

    if role in _ROLE_LABELS:
        lines.append(f"Роль: {_ROLE_LABELS[role]}")

    living = _text(profile.get("living_situation"))
    if living:
        lines.append(f"Проживание: {escape(truncate(living))}")

    habits = _habits(profile.get("habits"))
    if habits:
        lines.append(f"Привычки: {escape(truncate(habits))}")

    history = _text(profile.get("rental_history"))
    if history:
        lines.append(f"Опыт аренды: {escape(truncate(history))}")

    if role == "owner":
        preferences = _text(profile.get("tenant_preferences"))
        if preferences:
            lines.append(f"Пожелания к арендатору: {escape(truncate(preferences))}")
    elif role == "renter":
        about = _text(profile.get("about_me"))
        if about:
            lines.append(f"О себе: {escape(truncate(about))}")

    return "\n".join(lines)


class ProfileEnricher:
    """Looks up participant profiles by id; disabled when no client is set."""

    def __init__(
        self,
        client: SupabaseClient | None,
        *,
        table: str = "profiles",
    ) -> None:
        self._client = client
        self._table = table

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> ProfileEnricher:
        if not settings.profiles_configured:
            logger.info("profile_enrichment_disabled")
            return cls(None)
        client = SupabaseClient(
            supabase_url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
            http_client=http_client,
        )
        return cls(client, table=settings.profiles_table)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def fetch_profile(self, profile_id: str) -> dict[str, Any] | None:
        if self._client is None or not profile_id:
            return None
        try:
            rows = await self._client.fetch_rows(
                self._table, eq={"id": profile_id}, limit=1,
            )
        except Exception as exc:
            logger.warning(
                "profile_fetch_failed",
                profile_id=profile_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None
        if not rows:
            logger.info("profile_not_found", profile_id=profile_id)
            return None
        return rows[0]

    def format_profile(self, profile: dict[str, Any]) -> str:
        return format_profile(profile)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
