"""Command executor: run one SQL command and shape its result.

Every operation resolves an execution context first: an owned connection
(created from the database URL, closed when the call returns), a borrowed
connection, or a borrowed transaction. Borrowed connections are opened if
needed but never closed here. Driver errors propagate unchanged.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

from credcheck.db.backend import Connection, Cursor, Parameters
from credcheck.db.connection import create_connection
from credcheck.models.command import Command, CommandKind
from credcheck.models.result import DataSet, DataTable
from credcheck.stream import RowStream

logger = logging.getLogger(__name__)


class Transaction:
    """A transaction in progress on a connection opened by the executor."""

    def __init__(self, connection: Connection) -> None:
        """Initialize with the connection the transaction runs on."""
        self.connection = connection


def _to_text(value: Any) -> str:
    """Coerce a scalar to str; None and undecodable bytes become ""."""
    if value is None:
        return ""
    if isinstance(value, bytes | bytearray | memoryview):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return ""
    return str(value)


async def _materialize(cursor: Cursor) -> DataTable:
    """Read every remaining row of ``cursor`` into a DataTable."""
    rows = await cursor.fetchall()
    columns = cursor.columns
    await cursor.close()
    width = len(columns)
    return DataTable(columns=columns, rows=[tuple(row[i] for i in range(width)) for row in rows])


class CommandExecutor:
    """Executes SQL commands against the database named by ``database_url``."""

    def __init__(self, database_url: str) -> None:
        """Initialize with a connection URL. Nothing connects until first use."""
        self.database_url = database_url

    # -- Execution context --

    def _resolve(
        self, connection: Connection | None, transaction: Transaction | None
    ) -> tuple[Connection, bool]:
        """Return the connection to run on and whether this call owns it."""
        if connection is not None and transaction is not None:
            raise ValueError("Pass either connection or transaction, not both")
        if transaction is not None:
            return transaction.connection, False
        if connection is not None:
            return connection, False
        return create_connection(self.database_url), True

    @asynccontextmanager
    async def _scope(
        self, connection: Connection | None, transaction: Transaction | None
    ) -> AsyncIterator[Connection]:
        """Yield an open connection; close it on exit if this call owns it."""
        conn, owned = self._resolve(connection, transaction)
        try:
            if not conn.is_open:
                await conn.open()
            yield conn
        finally:
            if owned:
                await conn.close()

    async def _run(self, conn: Connection, command: Command) -> Cursor:
        sql = command.render(conn)
        logger.debug("Executing %s command: %s", command.kind, sql)
        return await conn.execute(sql, command.parameters)

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[Connection]:
        """Open a connection the caller can pass as ``connection=``."""
        conn = create_connection(self.database_url)
        await conn.open()
        try:
            yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Run a transaction on a new connection.

        Commits when the block exits normally, rolls back if it raises.
        The connection is closed either way.
        """
        async with self.connect() as conn:
            await conn.begin()
            try:
                yield Transaction(conn)
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    # -- Operations --

    async def execute_non_query(
        self,
        command_text: str,
        parameters: Parameters | None = None,
        *,
        kind: CommandKind = CommandKind.TEXT,
        connection: Connection | None = None,
        transaction: Transaction | None = None,
    ) -> int:
        """Execute an insert/update/delete and return the number of rows affected."""
        command = Command.build(command_text, parameters, kind)
        async with self._scope(connection, transaction) as conn:
            cursor = await self._run(conn, command)
            rowcount = cursor.rowcount
            await cursor.close()
            return rowcount

    async def execute_scalar(
        self,
        command_text: str,
        parameters: Parameters | None = None,
        *,
        kind: CommandKind = CommandKind.TEXT,
        connection: Connection | None = None,
        transaction: Transaction | None = None,
    ) -> Any:
        """Return the first column of the first row, or None if there are no rows."""
        command = Command.build(command_text, parameters, kind)
        async with self._scope(connection, transaction) as conn:
            cursor = await self._run(conn, command)
            row = await cursor.fetchone()
            await cursor.close()
        return row[0] if row is not None else None

    async def execute_scalar_value(
        self,
        command_text: str,
        parameters: Parameters | None = None,
        *,
        kind: CommandKind = CommandKind.TEXT,
        connection: Connection | None = None,
        transaction: Transaction | None = None,
    ) -> str:
        """Like execute_scalar(), as a string. Never returns None."""
        value = await self.execute_scalar(
            command_text, parameters, kind=kind, connection=connection, transaction=transaction
        )
        return _to_text(value)

    async def execute_reader(
        self,
        command_text: str,
        parameters: Parameters | None = None,
        *,
        kind: CommandKind = CommandKind.TEXT,
        connection: Connection | None = None,
        transaction: Transaction | None = None,
    ) -> RowStream:
        """Run a query and return a forward-only stream over its rows.

        The stream takes over an owned connection and closes it when the
        rows are exhausted or the stream is closed. If the query itself
        fails, the connection is closed before the error propagates.
        """
        command = Command.build(command_text, parameters, kind)
        conn, owned = self._resolve(connection, transaction)
        async with AsyncExitStack() as cleanup:
            if owned:
                cleanup.push_async_callback(conn.close)
            if not conn.is_open:
                await conn.open()
            sql = command.render(conn)
            logger.debug("Streaming %s command: %s", command.kind, sql)
            cursor = await conn.stream(sql, command.parameters)
            # Success: ownership passes to the stream
            cleanup.pop_all()
        return RowStream(cursor, conn, owns_connection=owned)

    async def get_data_table(
        self,
        command_text: str,
        parameters: Parameters | None = None,
        *,
        kind: CommandKind = CommandKind.TEXT,
        connection: Connection | None = None,
        transaction: Transaction | None = None,
    ) -> DataTable:
        """Run a query and return all of its rows."""
        command = Command.build(command_text, parameters, kind)
        async with self._scope(connection, transaction) as conn:
            cursor = await self._run(conn, command)
            return await _materialize(cursor)

    async def get_data_set(
        self,
        command_text: str,
        parameters: Parameters | None = None,
        *,
        kind: CommandKind = CommandKind.TEXT,
        connection: Connection | None = None,
        transaction: Transaction | None = None,
    ) -> DataSet:
        """Run a query and return its result tables.

        Both drivers return a single result set per statement, so the
        dataset holds one table.
        """
        table = await self.get_data_table(
            command_text, parameters, kind=kind, connection=connection, transaction=transaction
        )
        return DataSet(tables=[table])

    async def execute_insert(
        self,
        command_text: str,
        parameters: Parameters | None = None,
        *,
        kind: CommandKind = CommandKind.TEXT,
        connection: Connection | None = None,
        transaction: Transaction | None = None,
    ) -> int:
        """Execute an insert and return the id the database generated for it."""
        command = Command.build(command_text, parameters, kind)
        async with self._scope(connection, transaction) as conn:
            cursor = await self._run(conn, command)
            await cursor.close()
            new_id = await conn.last_insert_id()
        logger.debug("Insert generated id %s", new_id)
        return new_id
