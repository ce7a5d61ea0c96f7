"""Add a participant the creation call did not bring in.

Adds are attempted once per participant per request. Failures are classified
but never raised: the caller falls back to invite-link messaging.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

from ..observability.logging import get_logger
from .identifiers import canonical_id, normalize_handle
from .models import AddErrorKind, AddResult, PeerHandle, PlatformUser
from .responses import missing_invitee_ids

if TYPE_CHECKING:
    from ..protocols import MessagingPlatform

logger = get_logger(__name__)

_ALREADY_PARTICIPANT_MARKERS = ("USER_ALREADY_PARTICIPANT",)
_PRIVACY_MARKERS = (
    "USER_PRIVACY_RESTRICTED",
    "USER_NOT_MUTUAL_CONTACT",
    "PRIVACY",
)
_INVALID_MARKERS = (
    "USER_ID_INVALID",
    "PEER_ID_INVALID",
    "INPUT_USER_",
    "USER_DEACTIVATED",
    "ACCESS_HASH",
    "USER_INVALID",
)


def _error_text(exc: BaseException) -> str:
    # Telethon RPCError keeps the server code in ``message``.
    parts = [type(exc).__name__, str(getattr(exc, "message", "") or ""), str(exc)]
    return " ".join(parts).upper()


def classify_add_error(exc: BaseException) -> AddErrorKind | None:
    """Map an add-user exception to an error kind.

    Returns None when the exception means the user is already a member.
    """
    text = _error_text(exc)
    if any(marker in text for marker in _ALREADY_PARTICIPANT_MARKERS):
        return None
    if any(marker in text for marker in _PRIVACY_MARKERS):
        return AddErrorKind.PRIVACY_RESTRICTED
    if any(marker in text for marker in _INVALID_MARKERS):
        return AddErrorKind.INVALID_IDENTIFIER
    return AddErrorKind.UNKNOWN


class ParticipantAdder:
    def __init__(self, platform: MessagingPlatform) -> None:
        self._platform = platform

    async def add_participant(
        self,
        group_id: str,
        peer: PeerHandle,
        identifier: object,
        *,
        handle: str | None = None,
        known_users: Mapping[str, PlatformUser] | None = None,
    ) -> AddResult:
        user_id = canonical_id(identifier) or peer.user_id
        log = logger.bind(group_id=group_id, user_id=user_id)

        target = await self._resolve_access(user_id, peer, handle, known_users or {}, log)
        if target.is_placeholder:
            log.warning("participant_add_with_placeholder_hash")

        try:
            raw = await self._platform.add_chat_user(group_id, target)
        except Exception as exc:
            kind = classify_add_error(exc)
            if kind is None:
                log.info("participant_already_member")
                return AddResult(success=True)
            if kind is AddErrorKind.UNKNOWN:
                log.error(
                    "participant_add_failed",
                    error_kind=kind.value,
                    error_type=type(exc).__name__,
                    error=str(exc),
                    exc_info=True,
                )
            else:
                log.warning("participant_add_failed", error_kind=kind.value, error=str(exc))
            return AddResult(success=False, error_kind=kind, detail=str(exc))

        if user_id in missing_invitee_ids(raw):
            log.warning(
                "participant_add_failed",
                error_kind=AddErrorKind.PRIVACY_RESTRICTED.value,
                error="listed in missing_invitees",
            )
            return AddResult(
                success=False,
                error_kind=AddErrorKind.PRIVACY_RESTRICTED,
                detail="listed in missing_invitees",
            )

        log.info("participant_added", access_source=target.source)
        return AddResult(success=True)

    async def _resolve_access(
        self,
        user_id: str,
        peer: PeerHandle,
        handle: str | None,
        known_users: Mapping[str, PlatformUser],
        log,
    ) -> PeerHandle:
        """Pick the best access hash: creation users, handle, contacts, given peer."""
        known = known_users.get(user_id)
        if known is not None and known.access_hash:
            return known.to_handle("creation_response")

        username = normalize_handle(handle)
        if username:
            try:
                user = await self._platform.resolve_username(username)
            except Exception as exc:
                log.info("participant_username_lookup_failed", error=str(exc))
                user = None
            if user is not None and user.id == user_id and user.access_hash:
                return user.to_handle("username")

        try:
            contacts = await self._platform.list_contacts()
        except Exception as exc:
            log.info("participant_contacts_lookup_failed", error=str(exc))
            contacts = []
        for contact in contacts:
            if contact.id == user_id and contact.access_hash:
                return contact.to_handle("contacts")

        return peer
