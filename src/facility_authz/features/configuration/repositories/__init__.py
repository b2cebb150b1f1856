"""Configuration repositories."""

from .file_store import FileConfigurationStore

__all__ = ["FileConfigurationStore"]
