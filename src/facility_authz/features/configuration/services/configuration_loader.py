"""Configuration loader.

Loads the permission matrix, role hierarchy, team structure and
facility-team mapping documents, validates them and exposes the derived
lookup tables. The loader is constructed explicitly and passed to the
services that need it; there is no process-wide instance.

Readers always go through ``snapshot``, which is replaced in one assignment
on reload, so an evaluation never sees a half-updated table set.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from ..entities.config import ConfigurationSnapshot, DOCUMENT_MODELS, PermissionRule, TeamMappings
from ..entities.documents import CollectionRule
from ..entities.protocols import ConfigurationStore
from ...roles.role_model import parse_role
from ....config.constants import ConfigurationUnit, Operation, Role
from ....core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ReloadListener = Callable[[ConfigurationUnit, ConfigurationSnapshot], Awaitable[None]]


class ConfigurationLoader:
    """Owns the active ConfigurationSnapshot."""

    def __init__(self, store: ConfigurationStore):
        self.store = store
        self._snapshot: Optional[ConfigurationSnapshot] = None
        self._listeners: List[ReloadListener] = []

    @property
    def is_initialized(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> ConfigurationSnapshot:
        if self._snapshot is None:
            raise ConfigurationError("Configuration has not been initialized")
        return self._snapshot

    async def initialize(self) -> ConfigurationSnapshot:
        """Load and validate every document.

        Raises:
            ConfigurationError: If any document is missing or malformed. No
                snapshot is installed in that case.
        """
        units = list(ConfigurationUnit)
        documents = await asyncio.gather(*(self._load_unit(unit) for unit in units))
        self._snapshot = ConfigurationSnapshot.build(dict(zip(units, documents)))

        logger.info(
            f"Configuration initialized: {len(self._snapshot.permission_lookup_tables)} permission rules, "
            f"{len(self._snapshot.facility_scope_mappings)} collection rules"
        )
        return self._snapshot

    async def reload_configuration(self, unit_name: Union[str, ConfigurationUnit]) -> ConfigurationSnapshot:
        """Re-read one document and swap in a rebuilt snapshot.

        A failed reload leaves the previous snapshot active.

        Raises:
            ConfigurationError: If the unit is unknown, the loader has not been
                initialized, or the document is missing or malformed.
        """
        try:
            unit = ConfigurationUnit(unit_name)
        except ValueError:
            raise ConfigurationError(f"Unknown configuration unit: {unit_name}", unit=str(unit_name))

        current = self.snapshot
        document = await self._load_unit(unit)
        new_snapshot = current.with_document(unit, document)

        self._snapshot = new_snapshot
        logger.info(f"Configuration unit reloaded: {unit.value}")

        for listener in list(self._listeners):
            try:
                await listener(unit, new_snapshot)
            except Exception as e:
                logger.error(f"Configuration reload listener failed for {unit.value}: {e}")

        return new_snapshot

    def add_reload_listener(self, listener: ReloadListener) -> None:
        """Register an async callback run after every successful reload."""
        self._listeners.append(listener)

    def remove_reload_listener(self, listener: ReloadListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _load_unit(self, unit: ConfigurationUnit) -> Any:
        raw = await self.store.load(unit.value)
        model = DOCUMENT_MODELS[unit]
        try:
            return model.model_validate(raw)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
                for error in e.errors()
            )
            raise ConfigurationError(
                f"Invalid configuration {unit.value}: {problems}",
                unit=unit.value,
                details={"errors": len(e.errors())},
            )

    # Derived tables of the active snapshot

    @property
    def role_hierarchy(self) -> Mapping[Role, int]:
        return self.snapshot.role_hierarchy

    @property
    def team_mappings(self) -> TeamMappings:
        return self.snapshot.team_mappings

    @property
    def permission_lookup_tables(self) -> Mapping[Tuple[str, Operation], PermissionRule]:
        return self.snapshot.permission_lookup_tables

    @property
    def facility_scope_mappings(self) -> Mapping[str, CollectionRule]:
        return self.snapshot.facility_scope_mappings

    def get_permission_rule(self, resource: str, operation: Operation) -> Optional[PermissionRule]:
        return self.snapshot.get_rule(resource, operation)

    def can_manage_role(self, manager_role: Union[str, Role], target_role: Union[str, Role]) -> bool:
        """Whether the hierarchy lets manager_role assign or revoke target_role.

        Raises:
            ValidationError: If either role is unknown.
        """
        manager, target = parse_role(manager_role), parse_role(target_role)
        return target in self.snapshot.can_manage.get(manager, frozenset())

    def get_status(self) -> Dict[str, Any]:
        if self._snapshot is None:
            return {"initialized": False}
        return {
            "initialized": True,
            "loaded_at": self._snapshot.loaded_at.isoformat(),
            "permission_rules": len(self._snapshot.permission_lookup_tables),
            "resources": list(self._snapshot.resources),
            "listeners": len(self._listeners),
        }
