"""Tagged views over raw platform responses.

Telegram server versions disagree on response shapes: ``messages.createChat``
returns ``messages.InvitedUsers`` (chats under ``updates``) on current layers
and a bare ``Updates`` (chats at top level) on older ones; full-chat metadata
may hide the participant list. Parsers here turn those shapes into explicit
variants so callers match on the variant instead of probing optional fields.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal, Union

from .identifiers import canonical_id
from .models import PlatformUser


def _seq(value: Any) -> tuple[Any, ...]:
    if value is None or isinstance(value, (str, bytes)):
        return ()
    try:
        return tuple(value)
    except TypeError:
        return ()


def user_from_raw(raw: Any) -> PlatformUser | None:
    """Build a PlatformUser from a Telethon ``User`` (or lookalike).

    ``UserEmpty`` and anything without an id yields None.
    """
    user_id = canonical_id(getattr(raw, "id", None))
    if user_id is None or type(raw).__name__ == "UserEmpty":
        return None
    return PlatformUser(
        id=user_id,
        access_hash=getattr(raw, "access_hash", None),
        username=getattr(raw, "username", None),
        first_name=getattr(raw, "first_name", None),
        last_name=getattr(raw, "last_name", None),
        is_self=bool(getattr(raw, "is_self", False) or getattr(raw, "self", False)),
    )


def users_by_id(raws: Any) -> dict[str, PlatformUser]:
    users: dict[str, PlatformUser] = {}
    for raw in _seq(raws):
        user = user_from_raw(raw)
        if user is not None:
            users[user.id] = user
    return users


def describe_raw(raw: Any) -> str:
    """Render a raw response for diagnostics (Telethon objects via to_dict)."""
    to_dict = getattr(raw, "to_dict", None)
    if callable(to_dict):
        try:
            return json.dumps(to_dict(), default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            pass
    return repr(raw)


def missing_invitee_ids(raw: Any) -> frozenset[str]:
    """Ids listed under ``missing_invitees`` (privacy-blocked invitees)."""
    ids = set()
    for invitee in _seq(getattr(raw, "missing_invitees", None)):
        user_id = canonical_id(getattr(invitee, "user_id", None))
        if user_id is not None:
            ids.add(user_id)
    return frozenset(ids)


# ── createChat ─────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ChatsFound:
    location: Literal["updates", "top_level"]
    chats: tuple[Any, ...]
    users: tuple[Any, ...]
    missing_invitees: frozenset[str]


@dataclass(frozen=True, slots=True)
class ChatsMissing:
    raw: Any


CreateChatResponse = Union[ChatsFound, ChatsMissing]


def parse_create_chat(raw: Any) -> CreateChatResponse:
    """Locate the created chat: ``updates.chats`` first, then ``chats``."""
    missing = missing_invitee_ids(raw)

    updates = getattr(raw, "updates", None)
    if updates is not None:
        chats = _seq(getattr(updates, "chats", None))
        if chats:
            return ChatsFound(
                location="updates",
                chats=chats,
                users=_seq(getattr(updates, "users", None)),
                missing_invitees=missing,
            )

    chats = _seq(getattr(raw, "chats", None))
    if chats:
        return ChatsFound(
            location="top_level",
            chats=chats,
            users=_seq(getattr(raw, "users", None)),
            missing_invitees=missing,
        )

    return ChatsMissing(raw=raw)


# ── getFullChat ────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class MemberList:
    member_ids: tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class MembersUnavailable:
    reason: str


FullChatResponse = Union[MemberList, MembersUnavailable]


def parse_full_chat(raw: Any) -> FullChatResponse:
    """Extract raw member ids from ``messages.ChatFull``.

    ``ChatParticipantsForbidden`` carries no ``participants`` list and maps
    to MembersUnavailable.
    """
    full_chat = getattr(raw, "full_chat", None)
    if full_chat is None:
        return MembersUnavailable(reason="response has no full_chat")

    participants = getattr(full_chat, "participants", None)
    if participants is None:
        return MembersUnavailable(reason="full_chat has no participants")

    entries = getattr(participants, "participants", None)
    if entries is None:
        return MembersUnavailable(
            reason=f"participants hidden ({type(participants).__name__})"
        )

    return MemberList(
        member_ids=tuple(getattr(entry, "user_id", None) for entry in _seq(entries))
    )
