"""Shared pytest fixtures for the search management test suite."""

from __future__ import annotations

import pytest

from search_mgmt.core.config import ManagementConfig
from search_mgmt.models.provisioning import PollPolicy
from tests.unit.fakes import FakeClock, InMemoryBackend

# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"


@pytest.fixture()
def config() -> ManagementConfig:
    """Configuration with a subscription and a short poll interval."""
    return ManagementConfig(
        subscription_id=SUBSCRIPTION_ID,
        resource_group="rg-search",
        location="West US",
        poll_interval_s=10.0,
        poll_timeout_s=300.0,
    )


@pytest.fixture()
def policy() -> PollPolicy:
    """A 10 s fixed-interval policy bounded at 5 minutes."""
    return PollPolicy(interval_seconds=10.0, max_duration_seconds=300.0)


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    """Virtual clock starting at t=0."""
    return FakeClock()


@pytest.fixture()
def backend(config: ManagementConfig) -> InMemoryBackend:
    """In-memory backend whose services provision immediately."""
    return InMemoryBackend(config)
