"""SQLAlchemy ORM model for the tenant table of the management database."""

from sqlalchemy import Boolean, String, true
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import BigIntegerId, ManagementBase


class TenantModel(ManagementBase):
    """ORM model for the tenant table.

    Codes and names are both unique. Tenants are disabled rather than
    deleted, which removes their live pool but keeps their database. A row is
    deleted only when its creation failed to provision.
    """

    __tablename__ = "tenant"

    id: Mapped[int] = mapped_column(BigIntegerId, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(3), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<TenantModel(code={self.code}, name={self.name}, active={self.active})>"
