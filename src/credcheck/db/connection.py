"""Connection factory: pick a backend from a database URL."""

import logging

from credcheck.db.backend import Connection
from credcheck.db.sqlite_backend import MEMORY, SQLiteConnection

logger = logging.getLogger(__name__)

_SQLITE_PREFIX = "sqlite://"


def create_connection(url: str) -> Connection:
    """Create an unopened connection for ``url``.

    ``postgresql://`` and ``postgres://`` URLs use asyncpg. ``sqlite://`` is
    an in-memory database, ``sqlite:///path`` a file, and anything else is
    taken as a SQLite file path.
    """
    if not url:
        raise ValueError("No database URL configured (set CREDCHECK_DATABASE_URL)")
    if url.startswith(("postgresql://", "postgres://")):
        from credcheck.db.postgres_backend import PostgresConnection

        return PostgresConnection(url)
    return SQLiteConnection(_sqlite_path(url))


def _sqlite_path(url: str) -> str:
    """Map a SQLite URL or bare path to what sqlite3.connect() expects."""
    if not url.startswith(_SQLITE_PREFIX):
        return url
    path = url.removeprefix(_SQLITE_PREFIX)
    if not path or path == "/":
        return MEMORY
    # sqlite:///relative.db and sqlite:////abs/path.db
    return path.removeprefix("/")
