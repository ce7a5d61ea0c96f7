"""Request-scoped value types for group provisioning."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Literal, Mapping

from .errors import ValidationError

Role = Literal["owner", "renter", "facilitator"]

PLACEHOLDER_ACCESS_HASH = 0


@dataclass(frozen=True, slots=True)
class ProvisioningRequest:
    """Inbound request to provision one listing chat."""

    listing_id: str
    owner_id: str
    renter_id: str
    facilitator_id: str
    listing_title: str | None = None
    owner_handle: str | None = None
    renter_handle: str | None = None
    owner_profile_id: str | None = None
    renter_profile_id: str | None = None

    def validate(self) -> None:
        """Raise ValidationError when a required identifier is empty."""
        missing = [
            name
            for name in ("listing_id", "owner_id", "renter_id", "facilitator_id")
            if not str(getattr(self, name) or "").strip()
        ]
        if missing:
            raise ValidationError(missing)


@dataclass(frozen=True, slots=True)
class PlatformUser:
    """Platform-neutral user record produced by the messaging adapter."""

    id: str
    access_hash: int | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    is_self: bool = False

    def to_handle(self, source: str) -> PeerHandle:
        return PeerHandle(
            user_id=self.id,
            access_hash=self.access_hash or PLACEHOLDER_ACCESS_HASH,
            source=source,
            username=self.username,
            first_name=self.first_name,
            last_name=self.last_name,
        )


@dataclass(frozen=True, slots=True)
class PeerHandle:
    """Addressable user reference (id + access hash) for platform calls."""

    user_id: str
    access_hash: int = PLACEHOLDER_ACCESS_HASH
    source: str = "placeholder"
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.access_hash == PLACEHOLDER_ACCESS_HASH

    @property
    def display_name(self) -> str | None:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or None


@dataclass(frozen=True, slots=True)
class ProvisionedGroup:
    group_id: str
    title: str


@dataclass(frozen=True, slots=True)
class CreationOutcome:
    """Created group plus whatever the creation response told us about users."""

    group: ProvisionedGroup
    users: Mapping[str, PlatformUser] = field(
        default_factory=lambda: MappingProxyType({})
    )
    missing_invitees: frozenset[str] = frozenset()


class AddErrorKind(str, Enum):
    PRIVACY_RESTRICTED = "privacy_restricted"
    INVALID_IDENTIFIER = "invalid_identifier"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class AddResult:
    success: bool
    error_kind: AddErrorKind | None = None
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class MembershipSnapshot:
    """Membership derived from one live query (or the add-result fallback)."""

    total_non_facilitator_count: int
    owner_present: bool
    renter_present: bool
    source: Literal["live", "fallback"] = "live"

    @property
    def both_present(self) -> bool:
        return self.owner_present and self.renter_present


class OnboardingStage(str, Enum):
    AWAITING_SECOND_PARTY = "awaiting_second_party"
    BOTH_PRESENT = "both_present"
    SUMMARY_SENT = "summary_sent"


@dataclass(slots=True)
class OnboardingState:
    """Per-request onboarding progress.

    ``third_message_sent`` is a one-shot latch around the summary send.
    """

    stage: OnboardingStage | None = None
    third_message_sent: bool = False

    def claim_summary(self) -> bool:
        """Set the latch; False means another trigger already owns the send."""
        if self.third_message_sent:
            return False
        self.third_message_sent = True
        return True

    def release_summary(self) -> None:
        self.third_message_sent = False


@dataclass(frozen=True, slots=True)
class Participant:
    """One non-facilitator member of the listing chat."""

    role: Role
    user_id: str
    peer: PeerHandle
    handle: str | None = None
    profile_id: str | None = None

    @property
    def username(self) -> str | None:
        return self.handle or self.peer.username

    @property
    def display_name(self) -> str | None:
        return self.peer.display_name


@dataclass(frozen=True, slots=True)
class OnboardingContext:
    """Closure state copied into the onboarding flow and its background poll."""

    group: ProvisionedGroup
    facilitator_id: str
    owner: Participant
    renter: Participant
    listing_id: str
    listing_title: str | None = None
    invite_link: str | None = None


@dataclass(frozen=True, slots=True)
class ProvisioningResult:
    group: ProvisionedGroup
    snapshot: MembershipSnapshot
    stage: OnboardingStage | None
    invite_link: str | None = None
