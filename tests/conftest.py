"""Pytest configuration and fixtures for facility-authz tests."""

from typing import Iterable, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from facility_authz.config.constants import CacheTTL
from facility_authz.features.audit import DocumentStoreAuditLogger
from facility_authz.features.cache import AuthzCache, MemoryCacheAdapter
from facility_authz.features.configuration import ConfigurationLoader
from facility_authz.features.permissions import PermissionEvaluator
from facility_authz.features.teams import FacilityTeamManager

from .fakes import InMemoryConfigurationStore, InMemoryDirectory, ManualClock


@pytest.fixture
def clock():
    """Hand-driven clock for cache expiry."""
    return ManualClock()


@pytest.fixture
def directory():
    """In-memory identity and document directory."""
    return InMemoryDirectory()


@pytest.fixture
def config_store():
    """Configuration store holding the bundled default documents."""
    return InMemoryConfigurationStore()


@pytest_asyncio.fixture
async def configuration(config_store):
    """Initialized configuration loader."""
    loader = ConfigurationLoader(config_store)
    await loader.initialize()
    return loader


@pytest.fixture
def cache(clock):
    """Shared authorization cache with the testing TTL."""
    return AuthzCache(MemoryCacheAdapter(default_ttl=CacheTTL.TESTING, clock=clock), ttl=CacheTTL.TESTING)


@pytest.fixture
def audit_logger():
    """Mock audit logger recording every call."""
    mock_logger = AsyncMock(spec=DocumentStoreAuditLogger)
    mock_logger.log_access.return_value = True
    mock_logger.log_role_change.return_value = True
    return mock_logger


@pytest_asyncio.fixture
async def team_manager(directory, configuration, cache, audit_logger):
    """Facility team manager over the in-memory directory."""
    return FacilityTeamManager(directory, configuration, cache, audit_logger=audit_logger)


@pytest_asyncio.fixture
async def evaluator(team_manager, configuration, cache, directory, audit_logger):
    """Permission evaluator sharing the team manager's cache."""
    return PermissionEvaluator(
        team_manager,
        configuration,
        cache=cache,
        directory=directory,
        audit_logger=audit_logger,
        log_access_attempts=False,
    )


@pytest.fixture
def seed_user(directory, team_manager, audit_logger):
    """Create a directory user and their memberships, then reset call counters."""

    async def _seed(
        user_id: str,
        role: str,
        facilities: Iterable[str] = (),
        team_role: str = "member",
        global_admin: bool = False,
        home_facility: Optional[str] = None,
    ):
        facilities = list(facilities)
        directory.add_user(user_id, role=role, facility_id=home_facility or (facilities[0] if facilities else None))
        for facility_id in facilities:
            await team_manager.assign_user_to_team(user_id, facility_id, team_role)
        if global_admin:
            await team_manager.add_global_admin(user_id)
        directory.calls.clear()
        audit_logger.reset_mock()
        return directory.users[user_id]

    return _seed
