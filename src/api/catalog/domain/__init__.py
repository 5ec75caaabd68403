"""Catalog domain layer."""

from catalog.domain.product import Product

__all__ = ["Product"]
