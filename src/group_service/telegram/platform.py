"""Telethon implementation of the MessagingPlatform protocol.

This is the only module that converts canonical string ids into Telethon
ints and input types.
"""

from __future__ import annotations

from typing import Any, Sequence

from telethon.tl.functions.contacts import GetContactsRequest, ResolveUsernameRequest
from telethon.tl.functions.messages import (
    AddChatUserRequest,
    CreateChatRequest,
    ExportChatInviteRequest,
    GetFullChatRequest,
)
from telethon.tl.functions.users import GetUsersRequest
from telethon.tl.types import InputPeerChat, InputPeerSelf, InputPeerUser, InputUser

from ..provisioning.models import PeerHandle, PlatformUser
from ..provisioning.responses import user_from_raw, users_by_id
from .session import FacilitatorSession

# Messages forwarded to a newly added member; the chat is fresh so only the
# onboarding messages are ever in range.
ADD_USER_FWD_LIMIT = 50


def _input_user(peer: PeerHandle) -> InputUser:
    return InputUser(user_id=int(peer.user_id), access_hash=int(peer.access_hash))


def _chat_peer(group_id: str) -> InputPeerChat:
    return InputPeerChat(chat_id=int(group_id))


class TelegramPlatform:
    def __init__(self, session: FacilitatorSession) -> None:
        self._session = session

    async def lookup_peer(self, user_id: str) -> PlatformUser:
        client = await self._session.ensure_ready()
        peer = await client.get_input_entity(int(user_id))
        if isinstance(peer, InputPeerSelf):
            return PlatformUser(id=user_id, is_self=True)
        if isinstance(peer, InputPeerUser):
            return PlatformUser(id=str(peer.user_id), access_hash=peer.access_hash)
        raise ValueError(f"peer {user_id} is not a user ({type(peer).__name__})")

    async def get_me(self) -> PlatformUser:
        client = await self._session.ensure_ready()
        me = await client.get_me()
        user = user_from_raw(me)
        if user is None:
            raise ValueError("get_me returned no user")
        return user

    async def get_users(self, user_id: str, access_hash: int = 0) -> list[PlatformUser]:
        client = await self._session.ensure_ready()
        result = await client(GetUsersRequest(
            id=[InputUser(user_id=int(user_id), access_hash=access_hash)],
        ))
        return list(users_by_id(result).values())

    async def resolve_username(self, username: str) -> PlatformUser | None:
        client = await self._session.ensure_ready()
        result = await client(ResolveUsernameRequest(username=username))
        users = users_by_id(getattr(result, "users", None))
        peer_id = getattr(getattr(result, "peer", None), "user_id", None)
        if peer_id is not None and str(peer_id) in users:
            return users[str(peer_id)]
        return next(iter(users.values()), None)

    async def list_contacts(self) -> list[PlatformUser]:
        client = await self._session.ensure_ready()
        result = await client(GetContactsRequest(hash=0))
        return list(users_by_id(getattr(result, "users", None)).values())

    async def create_chat(self, peers: Sequence[PeerHandle], title: str) -> Any:
        client = await self._session.ensure_ready()
        return await client(CreateChatRequest(
            users=[_input_user(peer) for peer in peers],
            title=title,
        ))

    async def add_chat_user(self, group_id: str, peer: PeerHandle) -> Any:
        client = await self._session.ensure_ready()
        return await client(AddChatUserRequest(
            chat_id=int(group_id),
            user_id=_input_user(peer),
            fwd_limit=ADD_USER_FWD_LIMIT,
        ))

    async def get_full_chat(self, group_id: str) -> Any:
        client = await self._session.ensure_ready()
        return await client(GetFullChatRequest(chat_id=int(group_id)))

    async def send_message(self, group_id: str, text: str) -> None:
        client = await self._session.ensure_ready()
        await client.send_message(
            _chat_peer(group_id),
            text,
            parse_mode="html",
            link_preview=False,
        )

    async def export_invite_link(self, group_id: str) -> str:
        client = await self._session.ensure_ready()
        result = await client(ExportChatInviteRequest(peer=_chat_peer(group_id)))
        return result.link
