"""Product entity stored in each tenant database."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Product:
    """A product sold by one tenant."""

    name: str
    price: Decimal
    description: str | None = None
    active: bool = True
    id: int | None = None
