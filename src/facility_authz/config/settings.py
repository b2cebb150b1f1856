"""
Runtime settings for facility-authz.

Process-level configuration (cache staleness window, directory endpoint,
audit switches). The permission matrix itself is loaded by the
configuration loader from JSON documents, never from settings.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import AuditCollections, CacheTTL, TeamLimits

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults"


class AuthzSettings(BaseSettings):
    """Settings for the authorization engine, read from AUTHZ_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Cache Configuration
    cache_ttl_seconds: float = Field(default=CacheTTL.DEFAULT)
    cache_max_entries: int = Field(default=1000)
    cache_backend: str = Field(default="memory")
    redis_url: Optional[str] = Field(default=None)

    # Team Configuration
    max_teams_per_user: int = Field(default=TeamLimits.MAX_TEAMS_PER_USER)

    # Configuration documents
    config_path: Path = Field(default=DEFAULT_CONFIG_PATH)

    # External directory / document store
    directory_endpoint: str = Field(default="http://localhost/v1")
    directory_project_id: str = Field(default="")
    directory_api_key: SecretStr = Field(default=SecretStr(""))
    directory_timeout_seconds: float = Field(default=10.0)
    database_id: str = Field(default="immune-me-db")

    # Audit Configuration
    audit_enabled: bool = Field(default=True)
    log_access_attempts: bool = Field(default=True)
    access_audit_collection: str = Field(default=AuditCollections.ACCESS_AUDIT_LOG)
    role_change_collection: str = Field(default=AuditCollections.ROLE_CHANGE_LOG)

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        return v

    @field_validator("max_teams_per_user", "cache_max_entries")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator("cache_backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("cache_backend must be 'memory' or 'redis'")
        return v

    @property
    def uses_redis(self) -> bool:
        return self.cache_backend == "redis"


@lru_cache()
def get_settings() -> AuthzSettings:
    """Get cached settings instance."""
    return AuthzSettings()
