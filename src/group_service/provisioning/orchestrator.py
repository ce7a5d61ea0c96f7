"""Group provisioning orchestrator.

Pipeline for one request:
  validate -> resolve owner/renter/facilitator -> create chat -> add owner
  and renter -> settle -> reconcile membership -> export invite link ->
  onboarding messages (possibly spawning a background poll)

Validation, resolution and creation failures abort the request. Every step
after the chat exists degrades instead of failing, so a created group is
never rolled back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..observability.logging import get_logger
from .background import BackgroundTaskRegistry
from .group_creator import GroupCreator, derive_group_title
from .membership import DEFAULT_SETTLE_SECONDS, MembershipReconciler
from .models import (
    OnboardingContext,
    Participant,
    ProvisioningRequest,
    ProvisioningResult,
)
from .onboarding import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_MAX_ATTEMPTS,
    DEFAULT_SUMMARY_DELAY_SECONDS,
    OnboardingMessenger,
)
from .participant_adder import ParticipantAdder
from .peer_resolver import PeerResolver

if TYPE_CHECKING:
    from ..protocols import MessagingPlatform, ProfileLookup
    from ..settings import GroupServiceSettings

logger = get_logger(__name__)


class GroupProvisioningService:
    """Provisions listing chats through a shared facilitator session."""

    def __init__(
        self,
        platform: MessagingPlatform,
        *,
        enricher: ProfileLookup | None = None,
        tasks: BackgroundTaskRegistry | None = None,
        bot_username: str = "Renta_rent_bot",
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS,
        summary_delay_seconds: float = DEFAULT_SUMMARY_DELAY_SECONDS,
    ) -> None:
        self._platform = platform
        self.tasks = tasks or BackgroundTaskRegistry()
        self._resolver = PeerResolver(platform)
        self._creator = GroupCreator(platform)
        self._adder = ParticipantAdder(platform)
        self._reconciler = MembershipReconciler(platform, settle_seconds=settle_seconds)
        self._messenger = OnboardingMessenger(
            platform,
            self._reconciler,
            self.tasks,
            enricher=enricher,
            bot_username=bot_username,
            poll_interval_seconds=poll_interval_seconds,
            poll_max_attempts=poll_max_attempts,
            summary_delay_seconds=summary_delay_seconds,
        )

    @classmethod
    def from_settings(
        cls,
        platform: MessagingPlatform,
        settings: GroupServiceSettings,
        *,
        enricher: ProfileLookup | None = None,
        tasks: BackgroundTaskRegistry | None = None,
    ) -> GroupProvisioningService:
        return cls(
            platform,
            enricher=enricher,
            tasks=tasks,
            bot_username=settings.bot_username,
            settle_seconds=settings.membership_settle_seconds,
            poll_interval_seconds=settings.poll_interval_seconds,
            poll_max_attempts=settings.poll_max_attempts,
            summary_delay_seconds=settings.summary_delay_seconds,
        )

    async def provision(self, request: ProvisioningRequest) -> ProvisioningResult:
        request.validate()
        log = logger.bind(listing_id=request.listing_id)
        log.info(
            "provisioning_started",
            owner_id=request.owner_id,
            renter_id=request.renter_id,
            facilitator_id=request.facilitator_id,
        )

        owner_peer = await self._resolver.resolve(
            request.owner_id, handle=request.owner_handle, role="owner",
        )
        renter_peer = await self._resolver.resolve(
            request.renter_id, handle=request.renter_handle, role="renter",
        )
        facilitator_peer = await self._resolver.resolve(
            request.facilitator_id, role="facilitator",
        )

        title = derive_group_title(request.listing_id)
        outcome = await self._creator.create(
            [owner_peer, renter_peer, facilitator_peer], title,
        )
        group = outcome.group
        log = log.bind(group_id=group.group_id)

        owner_added = await self._adder.add_participant(
            group.group_id,
            owner_peer,
            request.owner_id,
            handle=request.owner_handle,
            known_users=outcome.users,
        )
        renter_added = await self._adder.add_participant(
            group.group_id,
            renter_peer,
            request.renter_id,
            handle=request.renter_handle,
            known_users=outcome.users,
        )

        await self._reconciler.settle()
        snapshot = await self._reconciler.reconcile(
            group.group_id,
            facilitator_peer.user_id,
            owner_peer.user_id,
            renter_peer.user_id,
            fallback=(owner_added, renter_added),
        )

        invite_link = await self._export_invite_link(group.group_id)

        context = OnboardingContext(
            group=group,
            facilitator_id=facilitator_peer.user_id,
            owner=Participant(
                role="owner",
                user_id=owner_peer.user_id,
                peer=owner_peer,
                handle=request.owner_handle,
                profile_id=request.owner_profile_id,
            ),
            renter=Participant(
                role="renter",
                user_id=renter_peer.user_id,
                peer=renter_peer,
                handle=request.renter_handle,
                profile_id=request.renter_profile_id,
            ),
            listing_id=request.listing_id,
            listing_title=request.listing_title,
            invite_link=invite_link,
        )
        state = await self._messenger.start(context, snapshot)

        log.info(
            "provisioning_finished",
            stage=state.stage.value if state.stage else None,
            member_count=snapshot.total_non_facilitator_count,
            has_invite_link=invite_link is not None,
        )
        return ProvisioningResult(
            group=group,
            snapshot=snapshot,
            stage=state.stage,
            invite_link=invite_link,
        )

    async def _export_invite_link(self, group_id: str) -> str | None:
        try:
            link = await self._platform.export_invite_link(group_id)
        except Exception as exc:
            logger.warning("invite_link_export_failed", group_id=group_id, error=str(exc))
            return None
        logger.info("invite_link_exported", group_id=group_id)
        return link or None
