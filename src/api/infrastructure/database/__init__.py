"""Database infrastructure - shared connection primitives."""

from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    UnknownConnectionError,
)

__all__ = [
    "DatabaseConnectionError",
    "DatabaseError",
    "UnknownConnectionError",
]
