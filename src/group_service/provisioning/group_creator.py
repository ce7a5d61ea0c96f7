"""Group creation and title derivation."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Sequence

from ..observability.logging import get_logger
from .errors import GroupCreationError
from .identifiers import canonical_id
from .models import CreationOutcome, PeerHandle, ProvisionedGroup
from .responses import ChatsFound, ChatsMissing, describe_raw, parse_create_chat, users_by_id

if TYPE_CHECKING:
    from ..protocols import MessagingPlatform

logger = get_logger(__name__)

GROUP_TITLE_PREFIX = "Чат #"
LISTING_ID_TITLE_CHARS = 8


def derive_group_title(listing_id: str) -> str:
    """Fixed prefix plus the first eight characters of the listing id."""
    return f"{GROUP_TITLE_PREFIX}{listing_id[:LISTING_ID_TITLE_CHARS]}"


class GroupCreator:
    def __init__(self, platform: MessagingPlatform) -> None:
        self._platform = platform

    async def create(self, peers: Sequence[PeerHandle], title: str) -> CreationOutcome:
        logger.info(
            "group_create_requested",
            title=title,
            user_ids=[p.user_id for p in peers],
            placeholder_hashes=[p.user_id for p in peers if p.is_placeholder],
        )
        try:
            raw = await self._platform.create_chat(list(peers), title)
        except Exception as exc:
            logger.error("group_create_failed", title=title, error=str(exc))
            raise GroupCreationError(f"create chat call failed: {exc}") from exc

        parsed = parse_create_chat(raw)
        if isinstance(parsed, ChatsMissing):
            rendered = describe_raw(parsed.raw)
            logger.error("group_create_unrecognised_response", response=rendered)
            raise GroupCreationError(
                "create chat returned no chat id", raw_response=rendered,
            )

        if not isinstance(parsed, ChatsFound):
            raise GroupCreationError(f"unhandled create chat result: {type(parsed).__name__}")
        chat = parsed.chats[0]
        group_id = canonical_id(getattr(chat, "id", None))
        if group_id is None:
            rendered = describe_raw(raw)
            logger.error("group_create_unrecognised_response", response=rendered)
            raise GroupCreationError(
                "create chat returned a chat without an id", raw_response=rendered,
            )

        group = ProvisionedGroup(group_id=group_id, title=title)
        logger.info(
            "group_created",
            group_id=group_id,
            location=parsed.location,
            missing_invitees=sorted(parsed.missing_invitees),
        )
        return CreationOutcome(
            group=group,
            users=MappingProxyType(users_by_id(parsed.users)),
            missing_invitees=parsed.missing_invitees,
        )
