"""Core building blocks shared by all facility-authz features."""
