"""Authorization cache service.

One namespaced view over a CacheBackend, shared by the team manager and the
permission evaluator. The TTL is the staleness window of every cached user
context, team lookup and decision: writes made through this instance are
visible immediately, writes made by other instances become visible after at
most ``ttl`` seconds.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from ..entities.protocols import CacheBackend, Clock
from ..adapters.memory_adapter import MemoryCacheAdapter
from ..adapters.redis_adapter import RedisCacheAdapter
from ....config.constants import CacheKeys, CacheTTL
from ....config.settings import AuthzSettings
from ....core.exceptions import CacheError

logger = logging.getLogger(__name__)

_NO_FACILITY = "-"


class AuthzCache:
    """Cache-aside helper with typed accessors for each cached kind."""

    def __init__(self, backend: CacheBackend, ttl: float = CacheTTL.DEFAULT):
        self.backend = backend
        self.ttl = ttl
        self._epoch = 0
        self._user_generations: Dict[str, int] = {}

    # Raw access

    async def get(self, key: str) -> Optional[Any]:
        try:
            return await self.backend.get(key)
        except CacheError as e:
            # A broken cache degrades to a miss
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.backend.set(key, value, self.ttl)
        except CacheError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    # Typed keys

    @staticmethod
    def user_teams_key(user_id: str) -> str:
        return CacheKeys.USER_TEAMS.format(user_id=user_id)

    @staticmethod
    def user_context_key(user_id: str) -> str:
        return CacheKeys.USER_CONTEXT.format(user_id=user_id)

    @staticmethod
    def decision_key(
        user_id: str,
        resource: str,
        operation: str,
        facility_id: Optional[str],
        resource_facility_id: Optional[str] = None,
    ) -> str:
        facility = facility_id if facility_id else _NO_FACILITY
        if resource_facility_id:
            facility = f"{facility}>{resource_facility_id}"
        return CacheKeys.DECISION.format(
            user_id=user_id,
            resource=resource,
            operation=operation,
            facility_id=facility,
        )

    @staticmethod
    def team_by_name_key(name: str) -> str:
        return CacheKeys.TEAM_BY_NAME.format(name=name)

    @staticmethod
    def team_by_id_key(team_id: str) -> str:
        return CacheKeys.TEAM_BY_ID.format(team_id=team_id)

    # Invalidation

    def generation(self, user_id: str) -> Tuple[int, int]:
        """Token that changes whenever the user's entries are invalidated.

        Readers take it before loading from the directory and only cache the
        result if it is unchanged afterwards, so a load that overlaps a write
        cannot put pre-write data back into the cache.
        """
        return self._epoch, self._user_generations.get(user_id, 0)

    def _bump_user(self, user_id: str) -> None:
        self._user_generations[user_id] = self._user_generations.get(user_id, 0) + 1

    async def invalidate_user(self, user_id: str) -> None:
        """Drop the user's teams, context and every decision made for them."""
        self._bump_user(user_id)
        await self.backend.delete(self.user_teams_key(user_id))
        await self.backend.delete(self.user_context_key(user_id))
        removed = await self.backend.delete_prefix(CacheKeys.DECISION_USER_PREFIX.format(user_id=user_id))
        logger.debug(f"Invalidated cache for user {user_id} ({removed} decisions)")

    async def invalidate_team(self, team_id: str, name: Optional[str] = None) -> None:
        await self.backend.delete(self.team_by_id_key(team_id))
        if name:
            await self.backend.delete(self.team_by_name_key(name))

    async def invalidate_decisions(self) -> int:
        """Drop every cached decision, used after a configuration reload."""
        self._epoch += 1
        removed = await self.backend.delete_prefix(CacheKeys.DECISION_PREFIX)
        logger.info(f"Invalidated {removed} cached decisions")
        return removed

    async def clear(self) -> None:
        self._epoch += 1
        await self.backend.clear()

    async def stats(self) -> Dict[str, Any]:
        data = await self.backend.stats()
        data["ttl_seconds"] = self.ttl
        return data

    async def close(self) -> None:
        if isinstance(self.backend, RedisCacheAdapter):
            await self.backend.close()


def create_cache(settings: AuthzSettings, clock: Optional[Clock] = None) -> AuthzCache:
    """Build the cache selected by settings."""
    if settings.uses_redis:
        if not settings.redis_url:
            raise CacheError("cache_backend is 'redis' but redis_url is not set")
        backend = RedisCacheAdapter.from_url(settings.redis_url, default_ttl=settings.cache_ttl_seconds)
    else:
        backend = MemoryCacheAdapter(
            default_ttl=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
            clock=clock,
        )
    return AuthzCache(backend, ttl=settings.cache_ttl_seconds)
