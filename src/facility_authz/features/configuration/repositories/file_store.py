"""File-backed configuration store."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from ....config.settings import DEFAULT_CONFIG_PATH
from ....core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class FileConfigurationStore:
    """Reads ``<unit>.json`` documents from a directory."""

    def __init__(self, config_path: Union[str, Path] = DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)

    def path_for(self, unit: str) -> Path:
        return self.config_path / f"{unit}.json"

    def _read(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    async def load(self, unit: str) -> Dict[str, Any]:
        path = self.path_for(unit)
        try:
            raw = await asyncio.to_thread(self._read, path)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path.name}", unit=unit)
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration {path.name}: {e}", unit=unit)

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Failed to parse configuration {path.name}: {e}", unit=unit)

        if not isinstance(document, dict):
            raise ConfigurationError(f"Configuration {path.name} must be a JSON object", unit=unit)

        logger.debug(f"Loaded configuration document {path}")
        return document
