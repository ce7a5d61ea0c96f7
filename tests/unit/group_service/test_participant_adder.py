"""Participant adds and add-error classification."""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from group_service.inmemory import InMemoryMessagingPlatform, InMemoryRPCError
from group_service.provisioning import (
    AddErrorKind,
    ParticipantAdder,
    PeerHandle,
    classify_add_error,
)

GROUP_ID = '4815162342'


class RecordingPlatform(InMemoryMessagingPlatform):
    def __init__(self, *, missing_on_add=(), **kwargs):
        super().__init__(**kwargs)
        self.add_targets: list[PeerHandle] = []
        self.missing_on_add = set(missing_on_add)

    async def add_chat_user(self, group_id, peer):
        self.add_targets.append(peer)
        if peer.user_id in self.missing_on_add:
            self.calls.append(('add_chat_user', peer.user_id))
            return SimpleNamespace(
                updates=SimpleNamespace(chats=[], users=[]),
                missing_invitees=[SimpleNamespace(user_id=int(peer.user_id))],
            )
        return await super().add_chat_user(group_id, peer)


class UserPrivacyRestrictedError(Exception):
    """Shape-alike of the Telethon error class (message in ``message``)."""

    message = 'USER_PRIVACY_RESTRICTED'


def _placeholder(user_id: str) -> PeerHandle:
    return PeerHandle(user_id=user_id)


# ── classify_add_error ───────────────────────────────────────────────


class TestClassifyAddError:
    @pytest.mark.parametrize(
        'exc, expected',
        [
            (InMemoryRPCError('USER_PRIVACY_RESTRICTED', 403), AddErrorKind.PRIVACY_RESTRICTED),
            (InMemoryRPCError('USER_NOT_MUTUAL_CONTACT'), AddErrorKind.PRIVACY_RESTRICTED),
            (UserPrivacyRestrictedError(), AddErrorKind.PRIVACY_RESTRICTED),
            (InMemoryRPCError('USER_ID_INVALID'), AddErrorKind.INVALID_IDENTIFIER),
            (InMemoryRPCError('PEER_ID_INVALID'), AddErrorKind.INVALID_IDENTIFIER),
            (ValueError('Invalid ACCESS_HASH'), AddErrorKind.INVALID_IDENTIFIER),
            (RuntimeError('connection reset'), AddErrorKind.UNKNOWN),
        ],
    )
    def test_kinds(self, exc, expected):
        assert classify_add_error(exc) is expected

    def test_already_participant_is_not_an_error(self):
        assert classify_add_error(InMemoryRPCError('USER_ALREADY_PARTICIPANT')) is None


# ── add_participant ──────────────────────────────────────────────────


class TestAddParticipant:
    @pytest.mark.asyncio
    async def test_success(self, owner):
        platform = RecordingPlatform(known=[owner])

        result = await ParticipantAdder(platform).add_participant(
            GROUP_ID, owner.to_handle('entity'), owner.id,
        )

        assert result.success is True
        assert result.error_kind is None
        assert owner.id in platform.members[GROUP_ID]

    @pytest.mark.asyncio
    async def test_already_member_counts_as_success(self, owner):
        platform = RecordingPlatform(known=[owner])
        platform.join(GROUP_ID, owner.id)

        result = await ParticipantAdder(platform).add_participant(
            GROUP_ID, owner.to_handle('entity'), owner.id,
        )

        assert result.success is True

    @pytest.mark.asyncio
    async def test_privacy_restricted(self, owner):
        platform = RecordingPlatform(known=[owner], privacy_restricted=[owner.id])

        result = await ParticipantAdder(platform).add_participant(
            GROUP_ID, owner.to_handle('entity'), owner.id,
        )

        assert result.success is False
        assert result.error_kind is AddErrorKind.PRIVACY_RESTRICTED
        assert 'USER_PRIVACY_RESTRICTED' in result.detail

    @pytest.mark.asyncio
    async def test_invalid_identifier(self):
        platform = RecordingPlatform(invalid_ids=['999'])

        result = await ParticipantAdder(platform).add_participant(
            GROUP_ID, _placeholder('999'), '999',
        )

        assert result.success is False
        assert result.error_kind is AddErrorKind.INVALID_IDENTIFIER

    @pytest.mark.asyncio
    async def test_missing_invitees_in_ack_is_privacy_failure(self, owner):
        platform = RecordingPlatform(known=[owner], missing_on_add=[owner.id])

        result = await ParticipantAdder(platform).add_participant(
            GROUP_ID, owner.to_handle('entity'), owner.id,
        )

        assert result.success is False
        assert result.error_kind is AddErrorKind.PRIVACY_RESTRICTED

    @pytest.mark.asyncio
    async def test_attempted_once(self, owner):
        platform = RecordingPlatform(known=[owner], privacy_restricted=[owner.id])

        await ParticipantAdder(platform).add_participant(
            GROUP_ID, owner.to_handle('entity'), owner.id,
        )

        assert [c for c in platform.calls if c[0] == 'add_chat_user'] == [
            ('add_chat_user', owner.id),
        ]


# ── Access hash selection ────────────────────────────────────────────


class TestAccessSelection:
    @pytest.mark.asyncio
    async def test_creation_response_users_first(self, owner):
        platform = RecordingPlatform()

        await ParticipantAdder(platform).add_participant(
            GROUP_ID,
            _placeholder(owner.id),
            owner.id,
            handle='owner_anna',
            known_users={owner.id: owner},
        )

        target = platform.add_targets[0]
        assert target.source == 'creation_response'
        assert target.access_hash == owner.access_hash
        assert not any(c[0] in ('resolve_username', 'list_contacts') for c in platform.calls)

    @pytest.mark.asyncio
    async def test_handle_before_contacts(self, owner):
        platform = RecordingPlatform(contacts=[owner])

        await ParticipantAdder(platform).add_participant(
            GROUP_ID, _placeholder(owner.id), owner.id, handle='@owner_anna',
        )

        assert platform.add_targets[0].source == 'username'

    @pytest.mark.asyncio
    async def test_contacts_without_handle(self, owner):
        platform = RecordingPlatform(contacts=[owner])

        await ParticipantAdder(platform).add_participant(
            GROUP_ID, _placeholder(owner.id), owner.id,
        )

        assert platform.add_targets[0].source == 'contacts'

    @pytest.mark.asyncio
    async def test_falls_back_to_given_peer(self):
        platform = RecordingPlatform()

        await ParticipantAdder(platform).add_participant(
            GROUP_ID, _placeholder('999'), '999',
        )

        target = platform.add_targets[0]
        assert target.is_placeholder
        assert target.user_id == '999'
