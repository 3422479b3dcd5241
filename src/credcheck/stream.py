"""Forward-only row stream returned by CommandExecutor.execute_reader()."""

from __future__ import annotations

import logging
from types import TracebackType

from credcheck.db.backend import Connection, Cursor, Row

logger = logging.getLogger(__name__)


class RowStream:
    """Lazy, single-pass async iterator over the rows of one query.

    When the stream owns its connection, the connection is closed as soon as
    the rows run out, a fetch fails, or the stream is closed explicitly.
    A borrowed connection is left open.
    """

    def __init__(self, cursor: Cursor, connection: Connection, *, owns_connection: bool) -> None:
        """Initialize with an executed cursor and the connection it runs on."""
        self._cursor = cursor
        self._connection = connection
        self._owns_connection = owns_connection
        self._closed = False

    @property
    def connection(self) -> Connection:
        """The connection backing this stream."""
        return self._connection

    @property
    def columns(self) -> list[str]:
        """Result column names."""
        return self._cursor.columns

    @property
    def closed(self) -> bool:
        """True once the stream has been exhausted or closed."""
        return self._closed

    def __aiter__(self) -> RowStream:
        return self

    async def __anext__(self) -> Row:
        if self._closed:
            raise StopAsyncIteration
        row = None
        try:
            row = await self._cursor.fetchone()
        finally:
            if row is None:
                await self.aclose()
        if row is None:
            raise StopAsyncIteration
        return row

    async def aclose(self) -> None:
        """Release the cursor and, if owned, the connection. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._cursor.close()
        finally:
            if self._owns_connection:
                await self._connection.close()
                logger.debug("Row stream closed its connection")

    async def __aenter__(self) -> RowStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
