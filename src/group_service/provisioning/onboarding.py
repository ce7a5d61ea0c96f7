"""Onboarding message flow driven by reconciled membership.

Stages:
  one participant present   -> awaiting_second_party (+ background re-poll)
  both present              -> both_present -> summary_sent
  anything else             -> no message

The background poll carries its own copy of the onboarding context and the
shared OnboardingState; its only exit conditions are success or exhaustion of
the attempt budget.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable

from ..observability.logging import get_logger
from . import messages
from .background import BackgroundTaskRegistry
from .errors import MembershipQueryFailure
from .models import MembershipSnapshot, OnboardingContext, OnboardingStage, OnboardingState

if TYPE_CHECKING:
    from ..protocols import MessagingPlatform, ProfileLookup
    from .membership import MembershipReconciler

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 3.0
DEFAULT_POLL_MAX_ATTEMPTS = 10
DEFAULT_SUMMARY_DELAY_SECONDS = 2.0


class OnboardingMessenger:
    def __init__(
        self,
        platform: MessagingPlatform,
        reconciler: MembershipReconciler,
        tasks: BackgroundTaskRegistry,
        *,
        enricher: ProfileLookup | None = None,
        bot_username: str = "Renta_rent_bot",
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS,
        summary_delay_seconds: float = DEFAULT_SUMMARY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._platform = platform
        self._reconciler = reconciler
        self._tasks = tasks
        self._enricher = enricher
        self._bot_username = bot_username
        self._poll_interval = poll_interval_seconds
        self._poll_max_attempts = poll_max_attempts
        self._summary_delay = summary_delay_seconds
        self._sleep = sleep

    async def start(
        self, context: OnboardingContext, snapshot: MembershipSnapshot,
    ) -> OnboardingState:
        """Send the message matching ``snapshot``; spawn a poll when one party is missing."""
        state = OnboardingState()
        count = snapshot.total_non_facilitator_count
        log = logger.bind(group_id=context.group.group_id, count=count)

        if count == 1:
            if snapshot.owner_present:
                present, absent = context.owner, context.renter
            elif snapshot.renter_present:
                present, absent = context.renter, context.owner
            else:
                log.warning("onboarding_unknown_member_present")
                return state
            state.stage = OnboardingStage.AWAITING_SECOND_PARTY
            await self._send(
                context,
                messages.awaiting_second_party(context, present, absent),
                kind="awaiting_second_party",
            )
            self._tasks.spawn(
                self.poll_until_complete(context, state),
                name=f"onboarding-poll-{context.group.group_id}",
            )
            log.info("onboarding_awaiting_second_party", absent_role=absent.role)
            return state

        if count == 2:
            if not snapshot.both_present:
                log.warning(
                    "onboarding_inconsistent_snapshot",
                    owner_present=snapshot.owner_present,
                    renter_present=snapshot.renter_present,
                )
            await self.complete(context, state)
            return state

        log.warning("onboarding_unexpected_member_count")
        return state

    async def poll_until_complete(
        self, context: OnboardingContext, state: OnboardingState,
    ) -> None:
        """Re-poll membership until both parties are present or the budget runs out."""
        group = context.group
        log = logger.bind(group_id=group.group_id)
        for attempt in range(1, self._poll_max_attempts + 1):
            await self._sleep(self._poll_interval)
            try:
                snapshot = await self._reconciler.reconcile(
                    group.group_id,
                    context.facilitator_id,
                    context.owner.user_id,
                    context.renter.user_id,
                )
            except MembershipQueryFailure as exc:
                log.info("onboarding_poll_query_failed", attempt=attempt, error=str(exc))
                continue

            if snapshot.both_present:
                log.info("onboarding_poll_both_present", attempt=attempt)
                await self.complete(context, state)
                if state.third_message_sent:
                    return

        log.info("onboarding_poll_exhausted", attempts=self._poll_max_attempts)

    async def complete(self, context: OnboardingContext, state: OnboardingState) -> bool:
        """Both-present prompt, short pause, then the one-shot summary.

        The summary latch is claimed up front so a concurrent trigger returns
        immediately. After a failed summary send the latch is released and a
        later call resends only the summary.
        """
        if not state.claim_summary():
            logger.info("onboarding_summary_already_claimed", group_id=context.group.group_id)
            return False
        if state.stage is not OnboardingStage.BOTH_PRESENT:
            state.stage = OnboardingStage.BOTH_PRESENT
            await self._send(context, messages.both_present(context), kind="both_present")
            if self._summary_delay > 0:
                await self._sleep(self._summary_delay)
        return await self._deliver_summary(context, state)

    async def _deliver_summary(self, context: OnboardingContext, state: OnboardingState) -> bool:
        owner_profile, renter_profile = await asyncio.gather(
            self._profile_text(context.owner.profile_id),
            self._profile_text(context.renter.profile_id),
        )
        text = messages.summary(
            context,
            bot_username=self._bot_username,
            owner_profile=owner_profile,
            renter_profile=renter_profile,
        )
        if not await self._send(context, text, kind="summary"):
            state.release_summary()
            return False

        state.stage = OnboardingStage.SUMMARY_SENT
        return True

    async def _profile_text(self, profile_id: str | None) -> str | None:
        if not profile_id or self._enricher is None:
            return None
        try:
            profile = await self._enricher.fetch_profile(profile_id)
            if not profile:
                return None
            return self._enricher.format_profile(profile) or None
        except Exception as exc:
            logger.warning(
                "onboarding_profile_unavailable",
                profile_id=profile_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None

    async def _send(self, context: OnboardingContext, text: str, *, kind: str) -> bool:
        try:
            await self._platform.send_message(context.group.group_id, text)
        except Exception as exc:
            logger.warning(
                "onboarding_message_failed",
                group_id=context.group.group_id,
                message_kind=kind,
                error=str(exc),
            )
            return False
        logger.info("onboarding_message_sent", group_id=context.group.group_id, message_kind=kind)
        return True
