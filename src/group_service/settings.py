"""Group service configuration.

GroupServiceSettings is the single configuration object accepted by
create_app(). It is a plain dataclass so tests can inject config without
touching os.environ; ``from_env()`` is the production factory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

_DEFAULT_CORS_ORIGINS: tuple[str, ...] = ("*",)


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class GroupServiceSettings:
    """Configuration for the group provisioning service.

    Non-local environments must supply the Telegram API credentials. The
    profile store is optional: without both Supabase values profile
    enrichment is disabled.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    port: int = 3000

    # ── Telegram facilitator session ──────────────────────────────
    telegram_api_id: int = 0
    telegram_api_hash: str = ""
    """Never log this."""

    telegram_session_string: str = ""
    """StringSession produced by ``group-service-auth``. Never log this."""

    telegram_phone: str = ""
    """Facilitator phone number, used only by the session bootstrap CLI."""

    telegram_connection_retries: int = 5

    # ── Profile store (Supabase PostgREST) ─────────────────────────
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    """Never log this."""

    profiles_table: str = "profiles"

    # ── Onboarding ─────────────────────────────────────────────────
    bot_username: str = "Renta_rent_bot"
    membership_settle_seconds: float = 1.0
    poll_interval_seconds: float = 3.0
    poll_max_attempts: int = 10
    summary_delay_seconds: float = 2.0

    # ── CORS ───────────────────────────────────────────────────────
    cors_origins: tuple[str, ...] = _DEFAULT_CORS_ORIGINS

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_api_id and self.telegram_api_hash)

    @property
    def profiles_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if not self.is_local and not self.telegram_configured:
            errors.append(
                f"{self.environment}: TELEGRAM_MANAGER_API_ID and "
                "TELEGRAM_MANAGER_API_HASH are required"
            )
        if self.telegram_api_id < 0:
            errors.append("telegram_api_id must be positive")
        if self.poll_max_attempts < 0:
            errors.append("poll_max_attempts must be >= 0")
        for name in (
            "membership_settle_seconds",
            "poll_interval_seconds",
            "summary_delay_seconds",
        ):
            if getattr(self, name) < 0:
                errors.append(f"{name} must be >= 0")
        return errors

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> GroupServiceSettings:
        """Build settings from environment variables."""
        if env is None:
            env = dict(os.environ)

        cors_raw = env.get("CORS_ORIGINS", "")
        cors = (
            tuple(o.strip() for o in cors_raw.split(",") if o.strip())
            if cors_raw
            else _DEFAULT_CORS_ORIGINS
        )

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            port=_int(env, "PORT", 3000),
            telegram_api_id=_int(env, "TELEGRAM_MANAGER_API_ID", 0),
            telegram_api_hash=env.get("TELEGRAM_MANAGER_API_HASH", ""),
            telegram_session_string=env.get("TELEGRAM_MANAGER_SESSION_STRING", ""),
            telegram_phone=env.get("TELEGRAM_MANAGER_PHONE", ""),
            telegram_connection_retries=_int(env, "TELEGRAM_CONNECTION_RETRIES", 5),
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            profiles_table=env.get("PROFILES_TABLE", "profiles"),
            bot_username=env.get("BOT_USERNAME", "Renta_rent_bot"),
            membership_settle_seconds=_float(env, "MEMBERSHIP_SETTLE_SECONDS", 1.0),
            poll_interval_seconds=_float(env, "MEMBERSHIP_POLL_INTERVAL_SECONDS", 3.0),
            poll_max_attempts=_int(env, "MEMBERSHIP_POLL_MAX_ATTEMPTS", 10),
            summary_delay_seconds=_float(env, "SUMMARY_DELAY_SECONDS", 2.0),
            cors_origins=cors,
        )
