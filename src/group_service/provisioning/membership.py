"""Membership reconciliation against a live member list.

Add acknowledgements are not authoritative (privacy settings can silently
drop an invitee), so presence is always derived from a fresh full-chat query.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable

from ..observability.logging import get_logger
from .errors import MembershipQueryFailure
from .identifiers import canonical_id
from .models import AddResult, MembershipSnapshot
from .responses import MembersUnavailable, MemberList, parse_full_chat

if TYPE_CHECKING:
    from ..protocols import MessagingPlatform

logger = get_logger(__name__)

DEFAULT_SETTLE_SECONDS = 1.0


class MembershipReconciler:
    def __init__(
        self,
        platform: MessagingPlatform,
        *,
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._platform = platform
        self._settle_seconds = settle_seconds
        self._sleep = sleep

    async def settle(self) -> None:
        """Give the platform time to converge before the first query."""
        if self._settle_seconds > 0:
            await self._sleep(self._settle_seconds)

    async def reconcile(
        self,
        group_id: str,
        facilitator_id: str,
        owner_id: str,
        renter_id: str,
        *,
        fallback: tuple[AddResult, AddResult] | None = None,
    ) -> MembershipSnapshot:
        """Return a fresh snapshot.

        ``fallback`` holds the (owner, renter) add results; it is used only
        when the live query fails. Without it the failure is raised as
        MembershipQueryFailure.
        """
        log = logger.bind(group_id=group_id)
        try:
            member_ids = await self._fetch_member_ids(group_id, facilitator_id)
        except MembershipQueryFailure as exc:
            if fallback is None:
                raise
            owner_added, renter_added = fallback
            snapshot = MembershipSnapshot(
                total_non_facilitator_count=int(owner_added.success) + int(renter_added.success),
                owner_present=owner_added.success,
                renter_present=renter_added.success,
                source="fallback",
            )
            log.warning(
                "membership_query_failed_using_add_results",
                error=str(exc),
                owner_present=snapshot.owner_present,
                renter_present=snapshot.renter_present,
            )
            return snapshot

        facilitator = canonical_id(facilitator_id, self_id=facilitator_id)
        others = {m for m in member_ids if m != facilitator}
        owner = canonical_id(owner_id, self_id=facilitator)
        renter = canonical_id(renter_id, self_id=facilitator)

        snapshot = MembershipSnapshot(
            total_non_facilitator_count=len(others),
            owner_present=owner in others,
            renter_present=renter in others,
        )
        log.info(
            "membership_reconciled",
            count=snapshot.total_non_facilitator_count,
            owner_present=snapshot.owner_present,
            renter_present=snapshot.renter_present,
        )
        return snapshot

    async def _fetch_member_ids(self, group_id: str, facilitator_id: str) -> set[str]:
        try:
            raw = await self._platform.get_full_chat(group_id)
        except Exception as exc:
            raise MembershipQueryFailure(f"full chat query failed: {exc}") from exc

        parsed = parse_full_chat(raw)
        if isinstance(parsed, MembersUnavailable):
            raise MembershipQueryFailure(parsed.reason)

        if not isinstance(parsed, MemberList):
            raise MembershipQueryFailure(f"unhandled full chat result: {type(parsed).__name__}")
        ids: set[str] = set()
        for member in parsed.member_ids:
            member_id = canonical_id(member, self_id=facilitator_id)
            if member_id is not None:
                ids.add(member_id)
        return ids
