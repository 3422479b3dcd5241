"""Database backend protocol — thin abstraction over async DB connections.

The command executor programs against these protocols. Each backend (SQLite,
Postgres, ...) provides a concrete implementation. SQL dialect differences
(placeholder style, stored routine calls, last-inserted id) are handled
inside the backend, not in application code.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

Parameters = Mapping[str, Any] | Sequence[Any]


@runtime_checkable
class Row(Protocol):
    """A database row supporting both named and positional access."""

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        ...

    def keys(self) -> Any:
        """Return column names."""
        ...


@runtime_checkable
class Cursor(Protocol):
    """Async cursor returned by Connection.execute() and Connection.stream()."""

    @property
    def rowcount(self) -> int:
        """Number of rows affected by the last operation."""
        ...

    @property
    def columns(self) -> list[str]:
        """Result column names, empty for statements that return no rows."""
        ...

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        ...

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        ...

    async def close(self) -> None:
        """Release the cursor."""
        ...


@runtime_checkable
class Connection(Protocol):
    """A single live link to the database.

    Connections are created closed and opened on first use. Statements use
    ``?`` placeholders with a sequence of values or ``:name`` placeholders
    with a mapping; backends translate to their native style.
    """

    dialect: str

    @property
    def is_open(self) -> bool:
        """True between a successful open() and close()."""
        ...

    async def open(self) -> None:
        """Open the underlying driver connection."""
        ...

    async def close(self) -> None:
        """Close the underlying driver connection. Safe to call twice."""
        ...

    async def execute(self, sql: str, params: Parameters = ()) -> Cursor:
        """Execute a single SQL statement and return a materialized cursor."""
        ...

    async def stream(self, sql: str, params: Parameters = ()) -> Cursor:
        """Execute a query and return a cursor that fetches rows lazily."""
        ...

    async def last_insert_id(self) -> int:
        """Return the id generated by the most recent insert on this connection."""
        ...

    def render_procedure(self, name: str, params: Parameters = ()) -> str:
        """Build the SQL that invokes stored routine ``name`` with ``params``."""
        ...

    async def begin(self) -> None:
        """Start a transaction."""
        ...

    async def commit(self) -> None:
        """Commit the current transaction."""
        ...

    async def rollback(self) -> None:
        """Roll back the current transaction."""
        ...
