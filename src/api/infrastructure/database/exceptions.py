"""Database-specific exceptions shared by all stores."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when a database connection cannot be established."""

    pass


class UnknownConnectionError(DatabaseError):
    """Raised when a connection name is not configured."""

    def __init__(self, connection_name: str):
        super().__init__(f"No database connection is configured as '{connection_name}'")
        self.connection_name = connection_name
