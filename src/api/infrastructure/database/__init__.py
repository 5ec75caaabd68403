"""Database infrastructure - pools, naming and shared exceptions."""

from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    InvalidDatabaseNameError,
    PoolClosedError,
)
from infrastructure.database.pool import DatabasePool, PoolHandle, PoolLimits

__all__ = [
    "DatabaseConnectionError",
    "DatabaseError",
    "DatabasePool",
    "InvalidDatabaseNameError",
    "PoolClosedError",
    "PoolHandle",
    "PoolLimits",
]
