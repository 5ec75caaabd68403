"""Ports (interfaces) for the tenancy bounded context."""
