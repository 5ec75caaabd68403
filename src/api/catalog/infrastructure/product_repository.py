"""SQLAlchemy repository for products of one tenant database."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from catalog.domain.product import Product
from catalog.infrastructure.models import ProductModel


class ProductRepository:
    """Reads and writes the product table through a tenant-bound session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, product: Product) -> Product:
        model = ProductModel(
            name=product.name,
            description=product.description,
            price=product.price,
            active=product.active,
        )
        self._session.add(model)
        self._session.flush()
        return self._to_domain(model)

    def list_all(self) -> list[Product]:
        models = self._session.execute(
            select(ProductModel).order_by(ProductModel.id)
        ).scalars()
        return [self._to_domain(model) for model in models]

    def count(self) -> int:
        return self._session.execute(
            select(func.count()).select_from(ProductModel)
        ).scalar_one()

    @staticmethod
    def _to_domain(model: ProductModel) -> Product:
        return Product(
            id=model.id,
            name=model.name,
            description=model.description,
            price=model.price,
            active=model.active,
        )
