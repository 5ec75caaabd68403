"""SQLAlchemy declarative bases shared by the management and tenant models.

The management database and the tenant databases hold different tables,
so each side declares its models on its own base. Neither base is used to
create tables: schemas come from the migration scopes.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

# SQLite only autoincrements INTEGER primary keys
BigIntegerId = BigInteger().with_variant(Integer(), "sqlite")


class ManagementBase(DeclarativeBase):
    """Base class for ORM models stored in the management database."""

    type_annotation_map: dict[type, Any] = {}


class TenantBase(DeclarativeBase):
    """Base class for ORM models stored in every tenant database."""

    type_annotation_map: dict[type, Any] = {}
