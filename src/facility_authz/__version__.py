"""Version information for facility-authz."""

__version__ = "0.1.0"
