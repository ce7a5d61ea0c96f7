"""In-memory messaging platform.

Used when ENVIRONMENT=local has no Telegram credentials, and by tests. It
mimics the Telethon response shapes the provisioning code parses (created
chats under ``updates``, ``missing_invitees``, ``messages.ChatFull``) and
the RPC error codes it classifies.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Iterable, Literal, Sequence

from .provisioning.models import PeerHandle, PlatformUser

CreateShape = Literal["invited_users", "updates", "empty"]


class InMemoryRPCError(Exception):
    """Stand-in for telethon RPCError: server code in ``message``."""

    def __init__(self, message: str, code: int = 400) -> None:
        self.message = message
        self.code = code
        super().__init__(f"{message} (code {code})")


def _raw_user(user: PlatformUser) -> SimpleNamespace:
    return SimpleNamespace(
        id=int(user.id),
        access_hash=user.access_hash,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
    )


class InMemoryMessagingPlatform:
    """Deterministic MessagingPlatform fake.

    ``known`` users resolve by direct lookup; ``public`` users resolve through
    ``get_users``; ``contacts`` through the contact list. Users in
    ``privacy_restricted`` are dropped from creation and rejected by adds.
    """

    def __init__(
        self,
        *,
        self_user: PlatformUser | None = None,
        known: Iterable[PlatformUser] = (),
        public: Iterable[PlatformUser] = (),
        contacts: Iterable[PlatformUser] = (),
        privacy_restricted: Iterable[str] = (),
        invalid_ids: Iterable[str] = (),
        create_shape: CreateShape = "invited_users",
        create_fails: bool = False,
        full_chat_fails: bool = False,
        invite_fails: bool = False,
        send_failures: int = 0,
        first_chat_id: int = 4815162342,
    ) -> None:
        self.self_user = self_user or PlatformUser(
            id="1000", access_hash=1000, username="renty_manager", first_name="Renty",
        )
        self.known = {u.id: u for u in known}
        self.public = {u.id: u for u in public}
        self.contacts = {u.id: u for u in contacts}
        self.privacy_restricted = set(privacy_restricted)
        self.invalid_ids = set(invalid_ids)
        self.create_shape = create_shape
        self.create_fails = create_fails
        self.full_chat_fails = full_chat_fails
        self.invite_fails = invite_fails
        self.send_failures = send_failures
        self._next_chat_id = first_chat_id

        self.calls: list[tuple[str, Any]] = []
        self.sent_messages: list[tuple[str, str]] = []
        self.members: dict[str, set[str]] = {}
        self.full_chat_queries = 0
        self._scheduled_joins: list[tuple[int, str, str]] = []

    # ── Test controls ──────────────────────────────────────────────

    def join(self, group_id: str, user_id: str) -> None:
        """Simulate a user joining through the invite link."""
        self.members.setdefault(group_id, set()).add(user_id)

    def join_after_queries(self, group_id: str, user_id: str, queries: int) -> None:
        """Join ``user_id`` once ``queries`` full-chat queries have been served."""
        self._scheduled_joins.append((queries, group_id, user_id))

    def _all_users(self) -> dict[str, PlatformUser]:
        users = {**self.contacts, **self.public, **self.known}
        users[self.self_user.id] = self.self_user
        return users

    # ── MessagingPlatform ─────────────────────────────────────────

    async def lookup_peer(self, user_id: str) -> PlatformUser:
        self.calls.append(("lookup_peer", user_id))
        if user_id == self.self_user.id:
            return PlatformUser(id=user_id, is_self=True)
        if user_id in self.known:
            return self.known[user_id]
        raise ValueError(f'Could not find the input entity for PeerUser(user_id={user_id})')

    async def get_me(self) -> PlatformUser:
        self.calls.append(("get_me", None))
        return self.self_user

    async def get_users(self, user_id: str, access_hash: int = 0) -> list[PlatformUser]:
        self.calls.append(("get_users", user_id))
        user = self.public.get(user_id)
        return [user] if user is not None else []

    async def resolve_username(self, username: str) -> PlatformUser | None:
        self.calls.append(("resolve_username", username))
        for user in self._all_users().values():
            if user.username and user.username.lower() == username.lower():
                return user
        raise InMemoryRPCError("USERNAME_NOT_OCCUPIED")

    async def list_contacts(self) -> list[PlatformUser]:
        self.calls.append(("list_contacts", None))
        return list(self.contacts.values())

    async def create_chat(self, peers: Sequence[PeerHandle], title: str) -> Any:
        self.calls.append(("create_chat", title))
        if self.create_fails:
            raise InMemoryRPCError("CHAT_INVALID")

        chat_id = self._next_chat_id
        self._next_chat_id += 1
        group_id = str(chat_id)

        added = {p.user_id for p in peers if p.user_id not in self.privacy_restricted}
        self.members[group_id] = added | {self.self_user.id}

        users = self._all_users()
        raw_users = [_raw_user(users[uid]) for uid in sorted(added) if uid in users]
        chat = SimpleNamespace(id=chat_id, title=title)
        missing = [
            SimpleNamespace(user_id=int(p.user_id))
            for p in peers
            if p.user_id in self.privacy_restricted
        ]

        if self.create_shape == "invited_users":
            return SimpleNamespace(
                updates=SimpleNamespace(chats=[chat], users=raw_users),
                missing_invitees=missing,
            )
        if self.create_shape == "updates":
            return SimpleNamespace(chats=[chat], users=raw_users)
        return SimpleNamespace(updates=SimpleNamespace(chats=[], users=[]), chats=[])

    async def add_chat_user(self, group_id: str, peer: PeerHandle) -> Any:
        self.calls.append(("add_chat_user", peer.user_id))
        if peer.user_id in self.privacy_restricted:
            raise InMemoryRPCError("USER_PRIVACY_RESTRICTED", 403)
        if peer.user_id in self.invalid_ids:
            raise InMemoryRPCError("USER_ID_INVALID")
        members = self.members.setdefault(group_id, set())
        if peer.user_id in members:
            raise InMemoryRPCError("USER_ALREADY_PARTICIPANT")
        members.add(peer.user_id)
        return SimpleNamespace(updates=SimpleNamespace(chats=[], users=[]), missing_invitees=[])

    async def get_full_chat(self, group_id: str) -> Any:
        self.calls.append(("get_full_chat", group_id))
        self.full_chat_queries += 1
        if self.full_chat_fails:
            raise InMemoryRPCError("CHAT_ID_INVALID")
        for queries, gid, uid in list(self._scheduled_joins):
            if self.full_chat_queries >= queries:
                self.join(gid, uid)
                self._scheduled_joins.remove((queries, gid, uid))
        participants = [
            SimpleNamespace(user_id=int(uid))
            for uid in sorted(self.members.get(group_id, set()))
        ]
        return SimpleNamespace(
            full_chat=SimpleNamespace(
                id=int(group_id),
                participants=SimpleNamespace(participants=participants),
            ),
            users=[],
        )

    async def send_message(self, group_id: str, text: str) -> None:
        self.calls.append(("send_message", group_id))
        if self.send_failures > 0:
            self.send_failures -= 1
            raise InMemoryRPCError("CHAT_WRITE_FORBIDDEN", 403)
        self.sent_messages.append((group_id, text))

    async def export_invite_link(self, group_id: str) -> str:
        self.calls.append(("export_invite_link", group_id))
        if self.invite_fails:
            raise InMemoryRPCError("CHAT_ADMIN_REQUIRED", 403)
        return f"https://t.me/+inmemory{group_id}"
