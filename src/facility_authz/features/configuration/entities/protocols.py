"""Configuration store protocol."""

from abc import abstractmethod
from typing import Any, Dict, Protocol, runtime_checkable


@runtime_checkable
class ConfigurationStore(Protocol):
    """Source of raw configuration documents keyed by unit name."""

    @abstractmethod
    async def load(self, unit: str) -> Dict[str, Any]:
        """Load and parse one document.

        Raises:
            ConfigurationError: If the document is missing or not valid JSON.
        """
        ...
