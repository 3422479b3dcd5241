"""PostgreSQL implementation of the Connection protocol.

Uses asyncpg for async access. Application SQL uses ``?`` or ``:name``
placeholders; this backend translates them to ``$N`` at execute time.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import asyncpg

if TYPE_CHECKING:
    from credcheck.db.backend import Cursor, Parameters, Row

logger = logging.getLogger(__name__)

# Pre-compiled regexes for placeholder translation
_PLACEHOLDER_RE = re.compile(r"\?")
# ``:name`` but not the ``::type`` cast operator. Single-quoted literals are
# matched first so any colon inside them is passed through untouched.
_NAMED_PLACEHOLDER_RE = re.compile(r"'(?:[^']|'')*'|(?<!:):([A-Za-z_][A-Za-z0-9_]*)")


def _translate_placeholders(sql: str) -> str:
    """Convert ``?`` placeholders to ``$1, $2, ...`` for asyncpg."""
    counter = 0

    def _replace(_match: re.Match[str]) -> str:
        nonlocal counter
        counter += 1
        return f"${counter}"

    return _PLACEHOLDER_RE.sub(_replace, sql)


def _translate_named_placeholders(sql: str, params: Mapping[str, Any]) -> tuple[str, list[Any]]:
    """Convert ``:name`` placeholders to ``$N`` and order the values to match.

    A name used twice maps to the same ``$N``. Text inside single-quoted
    literals is left alone. Raises KeyError for a placeholder with no value
    in ``params``.
    """
    positions: dict[str, int] = {}
    args: list[Any] = []

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name is None:
            return match.group(0)
        if name not in positions:
            args.append(params[name])
            positions[name] = len(args)
        return f"${positions[name]}"

    return _NAMED_PLACEHOLDER_RE.sub(_replace, sql), args


def _bind(sql: str, params: Parameters) -> tuple[str, list[Any]]:
    """Translate SQL and flatten params into asyncpg positional args."""
    if isinstance(params, Mapping):
        return _translate_named_placeholders(sql, params)
    return _translate_placeholders(sql), list(params)


class PostgresRow:
    """Wraps asyncpg.Record to satisfy the Row protocol."""

    def __init__(self, record: asyncpg.Record) -> None:
        """Initialize with an asyncpg Record."""
        self._record = record

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        return self._record[key]

    def keys(self) -> list[str]:
        """Return column names."""
        return list(self._record.keys())


class PostgresCursor:
    """Wraps a list of asyncpg.Record as a Cursor.

    asyncpg returns results eagerly — there's no server-side cursor for
    simple queries. This wraps the result list to match the Cursor protocol.
    """

    def __init__(
        self,
        rows: list[asyncpg.Record],
        status: str | None = None,
        columns: list[str] | None = None,
    ) -> None:
        """Initialize with result rows, optional status string and column names."""
        self._rows = rows
        self._index = 0
        self._rowcount = self._parse_rowcount(status)
        self._columns = columns or []

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        return self._rowcount

    @property
    def columns(self) -> list[str]:
        """Result column names."""
        return self._columns

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        if self._index >= len(self._rows):
            return None
        row = PostgresRow(self._rows[self._index])
        self._index += 1
        return row

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        remaining: list[Row] = [PostgresRow(r) for r in self._rows[self._index :]]
        self._index = len(self._rows)
        return remaining

    async def close(self) -> None:
        """Drop any unread rows."""
        self._index = len(self._rows)

    @staticmethod
    def _parse_rowcount(status: str | None) -> int:
        """Parse affected row count from asyncpg status string.

        Examples: "INSERT 0 1" → 1, "UPDATE 3" → 3, "DELETE 0" → 0.
        """
        if not status:
            return -1
        parts = status.split()
        if len(parts) >= 2:
            try:
                return int(parts[-1])
            except ValueError:
                pass
        return -1


class PostgresStreamCursor:
    """Server-side cursor that fetches one row per fetchone() call.

    asyncpg cursors only live inside a transaction. If the connection is not
    already in one, the stream starts its own and commits it on close().
    """

    def __init__(
        self,
        cursor: Any,
        columns: list[str],
        transaction: Any | None = None,
    ) -> None:
        """Initialize with an asyncpg Cursor and the transaction it owns, if any."""
        self._cursor = cursor
        self._columns = columns
        self._transaction = transaction

    @property
    def rowcount(self) -> int:
        """Unknown for a streaming query."""
        return -1

    @property
    def columns(self) -> list[str]:
        """Result column names."""
        return self._columns

    async def fetchone(self) -> Row | None:
        """Fetch the next row from the server, or None if exhausted."""
        record = await self._cursor.fetchrow()
        return PostgresRow(record) if record is not None else None

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        rows: list[Row] = []
        while (row := await self.fetchone()) is not None:
            rows.append(row)
        return rows

    async def close(self) -> None:
        """End the transaction this stream started."""
        if self._transaction is None:
            return
        transaction, self._transaction = self._transaction, None
        await transaction.commit()


class PostgresConnection:
    """PostgreSQL implementation of the Connection protocol.

    Holds a single asyncpg connection, no pool. ``commit()`` outside an
    explicit ``begin()`` is never needed since asyncpg auto-commits each
    statement.
    """

    dialect = "postgresql"

    def __init__(self, url: str) -> None:
        """Initialize with a connection URL. Does not connect."""
        self.url = url
        self._conn: asyncpg.Connection | None = None
        self._transaction: Any | None = None

    @property
    def is_open(self) -> bool:
        """True while the asyncpg connection is live."""
        return self._conn is not None and not self._conn.is_closed()

    async def open(self) -> None:
        """Connect to the server."""
        if self.is_open:
            return
        self._conn = await asyncpg.connect(self.url)
        logger.debug("Opened PostgreSQL connection")

    async def close(self) -> None:
        """Close the connection if open."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        self._transaction = None
        await conn.close()
        logger.debug("Closed PostgreSQL connection")

    def _require_open(self) -> asyncpg.Connection:
        if not self.is_open:
            raise asyncpg.InterfaceError("connection is closed")
        return self._conn

    async def execute(self, sql: str, params: Parameters = ()) -> Cursor:
        """Execute a single SQL statement and return a cursor."""
        conn = self._require_open()
        pg_sql, args = _bind(sql, params)
        # asyncpg.fetch returns list of Records for SELECT
        # asyncpg.execute returns status string for INSERT/UPDATE/DELETE
        stmt = await conn.prepare(pg_sql)
        attributes = stmt.get_attributes()
        if attributes:
            rows = await stmt.fetch(*args)
            return PostgresCursor(rows, columns=[attr.name for attr in attributes])
        status = await conn.execute(pg_sql, *args)
        return PostgresCursor([], status=status)

    async def stream(self, sql: str, params: Parameters = ()) -> Cursor:
        """Open a server-side cursor for a query."""
        conn = self._require_open()
        pg_sql, args = _bind(sql, params)
        transaction = None
        if not conn.is_in_transaction():
            transaction = conn.transaction()
            await transaction.start()
        try:
            stmt = await conn.prepare(pg_sql)
            cursor = await stmt.cursor(*args)
        except Exception:
            if transaction is not None:
                await transaction.rollback()
            raise
        columns = [attr.name for attr in stmt.get_attributes()]
        return PostgresStreamCursor(cursor, columns, transaction)

    async def last_insert_id(self) -> int:
        """Return ``lastval()``, the most recent sequence value in this session."""
        return await self._require_open().fetchval("SELECT lastval()")

    def render_procedure(self, name: str, params: Parameters = ()) -> str:
        """Build ``SELECT * FROM name(...)`` in positional or named notation.

        This invokes PostgreSQL functions, whose result rows feed the reader
        and table operations. A ``CREATE PROCEDURE`` routine cannot be called
        this way; run it as a TEXT command with ``CALL name(...)`` instead.
        """
        if isinstance(params, Mapping):
            args = ", ".join(f"{key} => :{key}" for key in params)
        else:
            args = ", ".join("?" for _ in params)
        return f"SELECT * FROM {name}({args})"

    async def begin(self) -> None:
        """Start a transaction."""
        self._transaction = self._require_open().transaction()
        await self._transaction.start()

    async def commit(self) -> None:
        """Commit the transaction started by begin()."""
        if self._transaction is None:
            return
        transaction, self._transaction = self._transaction, None
        await transaction.commit()

    async def rollback(self) -> None:
        """Roll back the transaction started by begin()."""
        if self._transaction is None:
            return
        transaction, self._transaction = self._transaction, None
        await transaction.rollback()
