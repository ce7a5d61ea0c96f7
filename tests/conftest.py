"""Pytest configuration for group service tests."""
import sys
from pathlib import Path

# Add src/ to path for src-layout imports
_PROJECT_ROOT = Path(__file__).parent.parent
_SRC = _PROJECT_ROOT / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from group_service.inmemory import InMemoryMessagingPlatform
from group_service.provisioning.models import PlatformUser, ProvisioningRequest

FACILITATOR_ID = '1000'


@pytest.fixture
def owner() -> PlatformUser:
    return PlatformUser(
        id='111', access_hash=1111, username='owner_anna', first_name='Анна', last_name='К',
    )


@pytest.fixture
def renter() -> PlatformUser:
    return PlatformUser(id='222', access_hash=2222, username='renter_boris', first_name='Борис')


@pytest.fixture
def platform(owner, renter) -> InMemoryMessagingPlatform:
    """Platform where both participants resolve by direct lookup."""
    return InMemoryMessagingPlatform(known=[owner, renter])


@pytest.fixture
def make_request(owner, renter):
    """Factory for a valid request; keyword overrides replace fields."""
    def _make(**overrides) -> ProvisioningRequest:
        fields = dict(
            listing_id='7f3c2a91-5b1e-4d0a-9c8e-000000000001',
            owner_id=owner.id,
            renter_id=renter.id,
            facilitator_id=FACILITATOR_ID,
            listing_title='Студия у метро',
            owner_handle='@owner_anna',
            renter_handle='renter_boris',
        )
        fields.update(overrides)
        return ProvisioningRequest(**fields)

    return _make
