"""Collaborator protocols injected into the provisioning service.

The Telethon adapter (``telegram.platform``) and the in-memory fake
(``inmemory``) both satisfy ``MessagingPlatform``. Identifiers crossing this
boundary are canonical strings; raw responses are returned untouched for the
calls whose shape varies by server (create, add, full chat).
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from .provisioning.models import PeerHandle, PlatformUser


@runtime_checkable
class MessagingPlatform(Protocol):
    """Facilitator-session capabilities consumed by the orchestrator."""

    async def lookup_peer(self, user_id: str) -> PlatformUser: ...
    async def get_me(self) -> PlatformUser: ...
    async def get_users(self, user_id: str, access_hash: int = 0) -> list[PlatformUser]: ...
    async def resolve_username(self, username: str) -> PlatformUser | None: ...
    async def list_contacts(self) -> list[PlatformUser]: ...
    async def create_chat(self, peers: Sequence[PeerHandle], title: str) -> Any: ...
    async def add_chat_user(self, group_id: str, peer: PeerHandle) -> Any: ...
    async def get_full_chat(self, group_id: str) -> Any: ...
    async def send_message(self, group_id: str, text: str) -> None: ...
    async def export_invite_link(self, group_id: str) -> str: ...


@runtime_checkable
class ProfileLookup(Protocol):
    """Best-effort participant profile lookup."""

    async def fetch_profile(self, profile_id: str) -> dict[str, Any] | None: ...
    def format_profile(self, profile: dict[str, Any]) -> str: ...