"""Logging configuration for facility-authz.

The engine only creates module loggers; the embedding service calls
``setup_logging()`` once at startup. Options come from the environment:

    LOG_LEVEL                 explicit level, overrides LOG_VERBOSITY
    LOG_VERBOSITY             QUIET, NORMAL, VERBOSE or DEBUG
    LOG_FORMAT                simple, detailed or json
    ENABLE_ACCESS_LOGGING     per-decision access lines from the evaluator
    ENABLE_DIRECTORY_LOGGING  request diagnostics from the directory client
"""

import logging
import logging.config
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LogVerbosity(str, Enum):
    """Verbosity modes and the root level each one selects."""
    QUIET = "QUIET"      # Only errors and critical
    NORMAL = "NORMAL"    # Warnings and above
    VERBOSE = "VERBOSE"  # Info level logging
    DEBUG = "DEBUG"      # Full debug logging

    @property
    def level(self) -> str:
        return {
            LogVerbosity.QUIET: "ERROR",
            LogVerbosity.NORMAL: "WARNING",
            LogVerbosity.VERBOSE: "INFO",
            LogVerbosity.DEBUG: "DEBUG",
        }[self]


class LogFormat(str, Enum):
    """Log format options."""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


FORMATS = {
    LogFormat.SIMPLE: "%(asctime)s - %(levelname)s - %(message)s",
    LogFormat.DETAILED: "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
    LogFormat.JSON: '{"time":"%(asctime)s","level":"%(levelname)s","module":"%(name)s","message":"%(message)s"}',
}

# Transport libraries only report failures
TRANSPORT_LOGGERS = ("httpx", "httpcore", "redis", "asyncio")

ACCESS_LOGGER = "facility_authz.features.permissions"
DIRECTORY_LOGGER = "facility_authz.integrations.directory"
CACHE_LOGGER = "facility_authz.features.cache"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class LoggingOptions:
    """Resolved logging options. Unknown values fall back to the defaults."""
    verbosity: LogVerbosity = LogVerbosity.NORMAL
    log_format: LogFormat = LogFormat.SIMPLE
    level: Optional[str] = None
    access_logging: bool = False
    directory_logging: bool = False

    @classmethod
    def create(
        cls,
        verbosity: str = "NORMAL",
        log_format: str = "simple",
        level: Optional[str] = None,
        access_logging: bool = False,
        directory_logging: bool = False,
    ) -> "LoggingOptions":
        try:
            parsed_verbosity = LogVerbosity(verbosity.strip().upper())
        except ValueError:
            parsed_verbosity = LogVerbosity.NORMAL
        try:
            parsed_format = LogFormat(log_format.strip().lower())
        except ValueError:
            parsed_format = LogFormat.SIMPLE
        parsed_level = level.strip().upper() if level else None
        if parsed_level not in LEVELS:
            parsed_level = None
        return cls(parsed_verbosity, parsed_format, parsed_level, access_logging, directory_logging)

    @classmethod
    def from_env(cls) -> "LoggingOptions":
        return cls.create(
            verbosity=os.getenv("LOG_VERBOSITY", "NORMAL"),
            log_format=os.getenv("LOG_FORMAT", "simple"),
            level=os.getenv("LOG_LEVEL"),
            access_logging=_env_flag("ENABLE_ACCESS_LOGGING"),
            directory_logging=_env_flag("ENABLE_DIRECTORY_LOGGING"),
        )

    @property
    def effective_level(self) -> str:
        return self.level or self.verbosity.level


class LoggingConfig:
    """Builds and applies the dictConfig for the engine's loggers."""

    @staticmethod
    def _isolated(level: str) -> Dict[str, Any]:
        return {"level": level, "handlers": ["console"], "propagate": False}

    @classmethod
    def build_config(cls, options: Optional[LoggingOptions] = None) -> Dict[str, Any]:
        """
        Build a dictConfig mapping.

        Access lines and directory diagnostics are held at WARNING unless
        switched on, or unless the effective level is DEBUG.
        """
        options = options or LoggingOptions()
        level = options.effective_level
        quiet = "DEBUG" if level == "DEBUG" else "WARNING"

        loggers = {name: cls._isolated("ERROR") for name in TRANSPORT_LOGGERS}
        if not options.access_logging:
            loggers[ACCESS_LOGGER] = cls._isolated(quiet)
        if not options.directory_logging:
            loggers[DIRECTORY_LOGGER] = cls._isolated(quiet)
        loggers[CACHE_LOGGER] = cls._isolated(quiet)

        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": FORMATS[options.log_format], "datefmt": "%Y-%m-%d %H:%M:%S"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": loggers,
        }

    @classmethod
    def configure(cls, options: Optional[LoggingOptions] = None) -> LoggingOptions:
        """Apply logging options, read from the environment when omitted."""
        options = options or LoggingOptions.from_env()
        logging.config.dictConfig(cls.build_config(options))
        logger.debug(
            f"Logging configured: level={options.effective_level}, format={options.log_format.value}, "
            f"access={options.access_logging}, directory={options.directory_logging}"
        )
        return options


def setup_logging(options: Optional[LoggingOptions] = None) -> LoggingOptions:
    """Configure logging for the process. Call once at startup."""
    return LoggingConfig.configure(options)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
