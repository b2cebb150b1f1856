"""Wiring of the authorization engine.

``create_engine`` builds every service from settings, loads the
configuration documents and returns them as one AuthorizationEngine. A
ConfigurationError raised here is the one error allowed to stop startup.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config.settings import AuthzSettings, get_settings
from .features.audit import AuditLogger, DocumentStoreAuditLogger
from .features.cache import AuthzCache, create_cache
from .features.cache.entities.protocols import Clock
from .features.configuration import ConfigurationLoader, ConfigurationStore, FileConfigurationStore
from .features.migration import LegacyRoleMigrator
from .features.permissions import PermissionEvaluator
from .features.teams import DirectoryClient, FacilityTeamManager
from .integrations.directory import HttpDirectoryClient

logger = logging.getLogger(__name__)


@dataclass
class AuthorizationEngine:
    """All engine services sharing one directory, cache and configuration."""
    settings: AuthzSettings
    directory: DirectoryClient
    cache: AuthzCache
    configuration: ConfigurationLoader
    team_manager: FacilityTeamManager
    evaluator: PermissionEvaluator
    migrator: LegacyRoleMigrator
    audit_logger: Optional[AuditLogger] = None

    async def close(self) -> None:
        await self.cache.close()
        if isinstance(self.directory, HttpDirectoryClient):
            await self.directory.close()


async def create_engine(
    settings: Optional[AuthzSettings] = None,
    directory: Optional[DirectoryClient] = None,
    store: Optional[ConfigurationStore] = None,
    clock: Optional[Clock] = None,
) -> AuthorizationEngine:
    """
    Build and initialize the authorization engine.

    Args:
        settings: Engine settings, process settings when omitted
        directory: Directory client, an HttpDirectoryClient from settings when omitted
        store: Configuration store, the file store at settings.config_path when omitted
        clock: Monotonic clock for the in-memory cache

    Raises:
        ConfigurationError: A configuration document is missing or invalid
    """
    settings = settings or get_settings()
    directory = directory or HttpDirectoryClient.from_settings(settings)
    store = store or FileConfigurationStore(settings.config_path)

    configuration = ConfigurationLoader(store)
    await configuration.initialize()

    cache = create_cache(settings, clock=clock)
    audit_logger = None
    if settings.audit_enabled:
        audit_logger = DocumentStoreAuditLogger(
            directory,
            access_collection=settings.access_audit_collection,
            role_change_collection=settings.role_change_collection,
        )

    team_manager = FacilityTeamManager(
        directory,
        configuration,
        cache,
        audit_logger=audit_logger,
        max_teams_per_user=settings.max_teams_per_user,
    )
    evaluator = PermissionEvaluator(
        team_manager,
        configuration,
        cache=cache,
        directory=directory,
        audit_logger=audit_logger,
        log_access_attempts=settings.log_access_attempts,
    )
    migrator = LegacyRoleMigrator(directory, team_manager)

    logger.info(
        f"Authorization engine ready: cache={settings.cache_backend}, ttl={settings.cache_ttl_seconds}s, "
        f"audit={'on' if audit_logger else 'off'}"
    )
    return AuthorizationEngine(
        settings=settings,
        directory=directory,
        cache=cache,
        configuration=configuration,
        team_manager=team_manager,
        evaluator=evaluator,
        migrator=migrator,
        audit_logger=audit_logger,
    )
