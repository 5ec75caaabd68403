"""Pydantic models for product API requests and responses."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from catalog.domain.product import Product


class CreateProductRequest(BaseModel):
    """Request model for creating a product."""

    name: str = Field(..., description="Product name", min_length=1, max_length=100)
    description: str | None = Field(
        None, description="Product description", max_length=500
    )
    price: Decimal = Field(
        ..., description="Unit price", ge=0, max_digits=10, decimal_places=2
    )


class ProductResponse(BaseModel):
    """Response model for product."""

    id: int
    name: str
    description: str | None = None
    price: Decimal
    active: bool

    @classmethod
    def from_domain(cls, product: Product) -> ProductResponse:
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            active=product.active,
        )


class ProductCountResponse(BaseModel):
    """Product count summed over every live tenant."""

    count: int
