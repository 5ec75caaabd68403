"""Application layer of the tenancy context."""
