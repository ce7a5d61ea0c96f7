"""Resolve participant ids into addressable peer handles.

Strategies, first success wins:
  1. direct entity lookup (works for peers the session has seen)
  2. self substitution when the lookup says the peer is the session itself
  3. ``users.getUsers`` with a zero access hash (public accounts come back
     with the real hash)
  4. username resolution, when a handle was supplied
  5. the facilitator's contact list
  6. placeholder handle with a zero access hash (may fail downstream)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..observability.logging import get_logger
from .errors import PeerResolutionError
from .identifiers import SELF_MARKERS, canonical_id, normalize_handle
from .models import PLACEHOLDER_ACCESS_HASH, PeerHandle, PlatformUser

if TYPE_CHECKING:
    from ..protocols import MessagingPlatform

logger = get_logger(__name__)


class PeerResolver:
    def __init__(self, platform: MessagingPlatform) -> None:
        self._platform = platform

    async def resolve(
        self,
        identifier: object,
        *,
        handle: str | None = None,
        role: str = "participant",
    ) -> PeerHandle:
        if isinstance(identifier, str) and identifier.strip().lower() in SELF_MARKERS:
            return await self._self_handle(role)

        user_id = canonical_id(identifier)
        if user_id is None:
            raise PeerResolutionError(identifier, role, "not a numeric identifier")

        log = logger.bind(role=role, user_id=user_id)
        username = normalize_handle(handle)

        peer = await self._direct_lookup(user_id, log)
        if peer is not None:
            return peer

        peer = await self._users_lookup(user_id, log)
        if peer is not None:
            return peer

        if username:
            peer = await self._username_lookup(username, user_id, log)
            if peer is not None:
                return peer

        peer = await self._contacts_lookup(user_id, log)
        if peer is not None:
            return peer

        log.warning("peer_resolved_with_placeholder_hash")
        return PeerHandle(
            user_id=user_id,
            access_hash=PLACEHOLDER_ACCESS_HASH,
            source="placeholder",
            username=username,
        )

    async def _direct_lookup(self, user_id: str, log) -> PeerHandle | None:
        try:
            found = await self._platform.lookup_peer(user_id)
        except Exception as exc:
            log.info("peer_direct_lookup_failed", error=str(exc))
            return None

        if found.is_self:
            try:
                me = await self._platform.get_me()
            except Exception as exc:
                log.info("peer_self_lookup_failed", error=str(exc))
                return None
            log.info("peer_resolved", strategy="self")
            return me.to_handle("self")

        log.info("peer_resolved", strategy="entity")
        return found.to_handle("entity")

    async def _self_handle(self, role: str) -> PeerHandle:
        try:
            me = await self._platform.get_me()
        except Exception as exc:
            raise PeerResolutionError("self", role, f"session identity unavailable: {exc}") from exc
        logger.info("peer_resolved", role=role, user_id=me.id, strategy="self")
        return me.to_handle("self")

    async def _users_lookup(self, user_id: str, log) -> PeerHandle | None:
        try:
            users = await self._platform.get_users(user_id, PLACEHOLDER_ACCESS_HASH)
        except Exception as exc:
            log.info("peer_users_lookup_failed", error=str(exc))
            return None

        user = _first_matching(users, user_id)
        if user is None:
            log.info("peer_users_lookup_empty", returned=len(users))
            return None
        log.info("peer_resolved", strategy="get_users")
        return user.to_handle("get_users")

    async def _username_lookup(self, username: str, user_id: str, log) -> PeerHandle | None:
        try:
            user = await self._platform.resolve_username(username)
        except Exception as exc:
            log.info("peer_username_lookup_failed", username=username, error=str(exc))
            return None
        if user is None:
            return None
        if user.id != user_id:
            log.warning("peer_username_id_mismatch", username=username, resolved_id=user.id)
            return None
        log.info("peer_resolved", strategy="username", username=username)
        return user.to_handle("username")

    async def _contacts_lookup(self, user_id: str, log) -> PeerHandle | None:
        try:
            contacts = await self._platform.list_contacts()
        except Exception as exc:
            log.info("peer_contacts_lookup_failed", error=str(exc))
            return None

        user = _first_matching(contacts, user_id)
        if user is None:
            return None
        log.info("peer_resolved", strategy="contacts")
        return user.to_handle("contacts")


def _first_matching(users: list[PlatformUser], user_id: str) -> PlatformUser | None:
    for user in users:
        if user.id == user_id and user.access_hash:
            return user
    return None
