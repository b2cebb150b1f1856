"""External service integrations for facility-authz."""
