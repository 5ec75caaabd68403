"""Catalog persistence."""
