"""Catalog application layer."""
