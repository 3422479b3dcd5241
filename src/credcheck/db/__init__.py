"""Database connections and schema management."""

from credcheck.db.backend import Connection, Cursor, Parameters, Row
from credcheck.db.connection import create_connection
from credcheck.db.sqlite_backend import SQLiteConnection

try:
    from credcheck.db.postgres_backend import PostgresConnection
except ImportError:
    PostgresConnection = None  # type: ignore[assignment,misc]

__all__ = [
    "Connection",
    "Cursor",
    "Parameters",
    "PostgresConnection",
    "Row",
    "SQLiteConnection",
    "create_connection",
]
