"""SQLite implementation of the Connection protocol.

Thin wrapper around aiosqlite.Connection. SQLite understands both ``?`` and
``:name`` placeholders natively, so no SQL translation is needed.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite

if TYPE_CHECKING:
    from credcheck.db.backend import Cursor, Parameters, Row

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class SQLiteCursor:
    """Wraps aiosqlite.Cursor to satisfy the Cursor protocol."""

    def __init__(self, cursor: aiosqlite.Cursor) -> None:
        """Initialize with an aiosqlite cursor."""
        self._cursor = cursor

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        rc = self._cursor.rowcount
        return rc if rc is not None else -1

    @property
    def columns(self) -> list[str]:
        """Result column names from the cursor description."""
        description = self._cursor.description
        if not description:
            return []
        return [col[0] for col in description]

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        return await self._cursor.fetchone()

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        return list(await self._cursor.fetchall())

    async def close(self) -> None:
        """Close the underlying cursor."""
        await self._cursor.close()


class SQLiteConnection:
    """SQLite implementation of the Connection protocol.

    Runs in autocommit mode (``isolation_level=None``): every statement
    commits on its own unless wrapped in an explicit begin()/commit().
    """

    dialect = "sqlite"

    def __init__(self, db_path: Path | str) -> None:
        """Initialize with a file path or ``:memory:``. Does not connect."""
        self.db_path = str(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        """True while the aiosqlite connection is live."""
        return self._conn is not None

    async def open(self) -> None:
        """Connect to the database file, creating parent directories."""
        if self._conn is not None:
            return
        if self.db_path != MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(self.db_path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys=ON")
        self._conn = conn
        logger.debug("Opened SQLite connection to %s", self.db_path)

    async def close(self) -> None:
        """Close the connection if open."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await conn.close()
        logger.debug("Closed SQLite connection to %s", self.db_path)

    def _require_open(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
        return self._conn

    async def execute(self, sql: str, params: Parameters = ()) -> Cursor:
        """Execute a single SQL statement and return a cursor."""
        cursor = await self._require_open().execute(sql, params)
        return SQLiteCursor(cursor)

    async def stream(self, sql: str, params: Parameters = ()) -> Cursor:
        """Execute a query; sqlite3 cursors already fetch rows on demand."""
        return await self.execute(sql, params)

    async def last_insert_id(self) -> int:
        """Return ``last_insert_rowid()`` for this connection."""
        cursor = await self._require_open().execute("SELECT last_insert_rowid()")
        row = await cursor.fetchone()
        await cursor.close()
        return row[0]

    def render_procedure(self, name: str, params: Parameters = ()) -> str:
        """SQLite has no stored procedures."""
        raise sqlite3.NotSupportedError(f"SQLite does not support stored procedures: {name}")

    async def begin(self) -> None:
        """Start an explicit transaction."""
        await self._require_open().execute("BEGIN")

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._require_open().commit()

    async def rollback(self) -> None:
        """Roll back the current transaction."""
        await self._require_open().rollback()
