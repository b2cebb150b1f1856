"""Features of the authorization engine.

Each feature owns its entities, services and adapters:
- roles: global role hierarchy and team role ordering
- cache: the shared TTL cache
- teams: facility teams and memberships
- configuration: declarative permission documents
- permissions: the permission evaluator
- audit: access and role change records
- migration: legacy role attribute migration
"""
