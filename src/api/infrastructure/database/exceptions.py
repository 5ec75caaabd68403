"""Database-specific exceptions shared by the management and tenant databases."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when a pool cannot establish or hand out connections."""

    def __init__(self, message: str, database: str | None = None):
        super().__init__(message)
        self.database = database


class PoolClosedError(DatabaseConnectionError):
    """Raised when a connection is requested from a closed pool."""

    pass


class InvalidDatabaseNameError(DatabaseError, ValueError):
    """Raised when a generated database name is not a safe identifier."""

    pass
