"""Listing group-chat provisioning and onboarding."""

from .background import BackgroundTaskRegistry
from .errors import (
    GroupCreationError,
    MembershipQueryFailure,
    PeerResolutionError,
    ProvisioningError,
    ValidationError,
)
from .group_creator import GROUP_TITLE_PREFIX, GroupCreator, derive_group_title
from .membership import MembershipReconciler
from .models import (
    AddErrorKind,
    AddResult,
    MembershipSnapshot,
    OnboardingStage,
    OnboardingState,
    PeerHandle,
    PlatformUser,
    ProvisionedGroup,
    ProvisioningRequest,
    ProvisioningResult,
)
from .onboarding import OnboardingMessenger
from .orchestrator import GroupProvisioningService
from .participant_adder import ParticipantAdder, classify_add_error
from .peer_resolver import PeerResolver

__all__ = [
    'AddErrorKind',
    'AddResult',
    'BackgroundTaskRegistry',
    'GROUP_TITLE_PREFIX',
    'GroupCreationError',
    'GroupCreator',
    'GroupProvisioningService',
    'MembershipQueryFailure',
    'MembershipReconciler',
    'MembershipSnapshot',
    'OnboardingMessenger',
    'OnboardingStage',
    'OnboardingState',
    'ParticipantAdder',
    'PeerHandle',
    'PeerResolutionError',
    'PeerResolver',
    'PlatformUser',
    'ProvisionedGroup',
    'ProvisioningError',
    'ProvisioningRequest',
    'ProvisioningResult',
    'ValidationError',
    'classify_add_error',
    'derive_group_title',
]
