"""Configuration services."""

from .configuration_loader import ConfigurationLoader, ReloadListener

__all__ = ["ConfigurationLoader", "ReloadListener"]
