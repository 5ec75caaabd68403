"""SQLAlchemy ORM model for the product table of a tenant database."""

from decimal import Decimal

from sqlalchemy import Boolean, Numeric, String, true
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import BigIntegerId, TenantBase


class ProductModel(TenantBase):
    """ORM model for the product table."""

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(BigIntegerId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<ProductModel(id={self.id}, name={self.name})>"
