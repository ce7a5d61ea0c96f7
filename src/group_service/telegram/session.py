"""Long-lived facilitator session.

One TelegramClient on a StringSession is shared by every request. It is
connected once (at startup in the background, or lazily by the first request
if startup failed) and disconnected on shutdown. Transport-level reconnects
are Telethon's job, bounded by ``connection_retries``.
"""

from __future__ import annotations

import asyncio

from telethon import TelegramClient
from telethon.sessions import StringSession

from ..observability.logging import get_logger

logger = get_logger(__name__)


class SessionUnavailableError(RuntimeError):
    """The facilitator session could not be connected or is not authorised."""


class FacilitatorSession:
    def __init__(
        self,
        *,
        api_id: int,
        api_hash: str,
        session_string: str = "",
        connection_retries: int = 5,
        client: TelegramClient | None = None,
    ) -> None:
        if not api_id or not api_hash:
            raise ValueError("api_id and api_hash are required")
        self._initial_session = session_string
        self._client = client or TelegramClient(
            StringSession(session_string),
            api_id,
            api_hash,
            connection_retries=connection_retries,
        )
        self._ready = False
        self._connect_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings) -> FacilitatorSession:
        return cls(
            api_id=settings.telegram_api_id,
            api_hash=settings.telegram_api_hash,
            session_string=settings.telegram_session_string,
            connection_retries=settings.telegram_connection_retries,
        )

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def ensure_ready(self) -> TelegramClient:
        """Connect and verify authorisation once; return the shared client."""
        if self._ready and self._client.is_connected():
            return self._client

        async with self._connect_lock:
            if self._ready and self._client.is_connected():
                return self._client

            self._ready = False
            logger.info("telegram_connecting")
            try:
                await self._client.connect()
                authorized = await self._client.is_user_authorized()
            except (OSError, ConnectionError, asyncio.TimeoutError) as exc:
                logger.error("telegram_connect_failed", error=str(exc))
                raise SessionUnavailableError(f"Telegram connection failed: {exc}") from exc

            if not authorized:
                logger.error("telegram_session_not_authorized")
                raise SessionUnavailableError(
                    "Telegram session is not authorized; run group-service-auth "
                    "and set TELEGRAM_MANAGER_SESSION_STRING"
                )

            self._ready = True
            logger.info("telegram_ready")
            if self._client.session.save() != self._initial_session:
                logger.warning(
                    "telegram_session_changed",
                    hint="store the new value from group-service-auth",
                )
            return self._client

    async def disconnect(self) -> None:
        self._ready = False
        if self._client.is_connected():
            await self._client.disconnect()
            logger.info("telegram_disconnected")
