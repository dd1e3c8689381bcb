"""Root-level pytest fixtures for all tests.

Provides shared fixtures:
- Canonical parcels and credentials
- Adapter contexts over the scripted fake transport
"""

import pytest

from carrierkit.models import Parcel
from carrierkit.services.adapter import AdapterContext
from tests.helpers.factories import make_parcel
from tests.helpers.fake_transport import FakeTransport


@pytest.fixture
def parcels() -> list[Parcel]:
    """Three parcels with distinct ids."""
    return [make_parcel("p1"), make_parcel("p2"), make_parcel("p3")]


@pytest.fixture
def credentials() -> dict[str, str]:
    return {"apiKey": "test-api-key", "username": "user", "password": "secret"}


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def context(transport: FakeTransport) -> AdapterContext:
    return AdapterContext(http=transport)
