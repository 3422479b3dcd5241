"""Tests for the command executor."""

import sqlite3

import pytest

from credcheck.models.command import CommandKind
from credcheck.models.result import DataSet, DataTable
from credcheck.stream import RowStream


@pytest.mark.asyncio
async def test_non_query_returns_rows_affected(executor, add_user):
    await add_user("alice", "a")
    await add_user("bob", "b")
    await add_user("carol", "c")
    affected = await executor.execute_non_query(
        "UPDATE base_user SET password = :password WHERE user_name <> :user_name",
        {"password": "changed", "user_name": "alice"},
    )
    assert affected == 2


@pytest.mark.asyncio
async def test_non_query_delete_nothing(executor):
    assert await executor.execute_non_query("DELETE FROM base_user") == 0


@pytest.mark.asyncio
async def test_non_query_closes_owned_connection(executor, created_connections):
    await executor.execute_non_query("DELETE FROM base_user")
    assert len(created_connections) == 1
    assert created_connections[0].is_open is False


@pytest.mark.asyncio
async def test_failure_closes_owned_connection(executor, created_connections):
    with pytest.raises(sqlite3.OperationalError):
        await executor.execute_non_query("UPDATE no_such_table SET x = 1")
    assert created_connections[0].is_open is False


@pytest.mark.asyncio
async def test_scalar_first_column_first_row(executor, add_user):
    await add_user("alice", "a")
    await add_user("bob", "b")
    name = await executor.execute_scalar(
        "SELECT user_name, password FROM base_user ORDER BY id"
    )
    assert name == "alice"


@pytest.mark.asyncio
async def test_scalar_no_rows_is_none(executor):
    assert await executor.execute_scalar("SELECT user_name FROM base_user") is None


@pytest.mark.asyncio
async def test_scalar_value_null_is_empty_string(executor):
    assert await executor.execute_scalar_value("SELECT NULL") == ""


@pytest.mark.asyncio
async def test_scalar_value_no_rows_is_empty_string(executor):
    assert await executor.execute_scalar_value("SELECT user_name FROM base_user") == ""


@pytest.mark.asyncio
async def test_scalar_value_stringifies(executor, add_user):
    await add_user("alice", "a")
    assert await executor.execute_scalar_value("SELECT COUNT(*) FROM base_user") == "1"


@pytest.mark.asyncio
async def test_scalar_value_undecodable_bytes_is_empty_string(executor):
    assert await executor.execute_scalar_value("SELECT X'FF'") == ""
    assert await executor.execute_scalar_value("SELECT X'6869'") == "hi"


@pytest.mark.asyncio
async def test_reader_streams_rows_in_order(executor, add_user):
    for name in ("alice", "bob", "carol"):
        await add_user(name, "pw")
    stream = await executor.execute_reader("SELECT user_name FROM base_user ORDER BY id")
    assert isinstance(stream, RowStream)
    assert stream.columns == ["user_name"]
    names = [row["user_name"] async for row in stream]
    assert names == ["alice", "bob", "carol"]


@pytest.mark.asyncio
async def test_reader_exhausted_closes_connection(executor, add_user):
    await add_user("alice", "pw")
    stream = await executor.execute_reader("SELECT * FROM base_user")
    assert stream.connection.is_open is True
    rows = [row async for row in stream]
    assert len(rows) == 1
    assert stream.closed is True
    assert stream.connection.is_open is False


@pytest.mark.asyncio
async def test_reader_explicit_close_closes_connection(executor, add_user):
    await add_user("alice", "pw")
    await add_user("bob", "pw")
    stream = await executor.execute_reader("SELECT * FROM base_user")
    await anext(stream)
    await stream.aclose()
    assert stream.connection.is_open is False
    # Closing twice is harmless and iteration stops
    await stream.aclose()
    assert [row async for row in stream] == []


@pytest.mark.asyncio
async def test_reader_context_manager_closes_connection(executor, add_user):
    await add_user("alice", "pw")
    async with await executor.execute_reader("SELECT * FROM base_user") as stream:
        pass
    assert stream.connection.is_open is False


@pytest.mark.asyncio
async def test_reader_failure_closes_connection(executor, created_connections):
    with pytest.raises(sqlite3.OperationalError):
        await executor.execute_reader("SELECT * FROM no_such_table")
    assert len(created_connections) == 1
    assert created_connections[0].is_open is False


@pytest.mark.asyncio
async def test_reader_leaves_borrowed_connection_open(executor, add_user):
    await add_user("alice", "pw")
    async with executor.connect() as conn:
        stream = await executor.execute_reader("SELECT * FROM base_user", connection=conn)
        rows = [row async for row in stream]
        assert len(rows) == 1
        assert conn.is_open is True
    assert conn.is_open is False


@pytest.mark.asyncio
async def test_data_table(executor, add_user):
    await add_user("alice", "a")
    await add_user("bob", "b")
    table = await executor.get_data_table(
        "SELECT user_name, password FROM base_user WHERE password <> ? ORDER BY id", ("x",)
    )
    assert isinstance(table, DataTable)
    assert table.columns == ["user_name", "password"]
    assert table.rows == [("alice", "a"), ("bob", "b")]
    assert table.records()[1] == {"user_name": "bob", "password": "b"}
    assert len(table) == 2


@pytest.mark.asyncio
async def test_data_table_empty_keeps_columns(executor):
    table = await executor.get_data_table("SELECT id, user_name FROM base_user")
    assert table.columns == ["id", "user_name"]
    assert table.rows == []


@pytest.mark.asyncio
async def test_data_table_closes_connection(executor, created_connections):
    await executor.get_data_table("SELECT * FROM base_user")
    assert created_connections[0].is_open is False


@pytest.mark.asyncio
async def test_data_set(executor, add_user):
    await add_user("alice", "a")
    dataset = await executor.get_data_set("SELECT user_name FROM base_user")
    assert isinstance(dataset, DataSet)
    assert len(dataset) == 1
    assert dataset[0].rows == [("alice",)]


@pytest.mark.asyncio
async def test_insert_returns_generated_ids(executor):
    sql = "INSERT INTO base_user (user_name, password) VALUES (:user_name, :password)"
    first = await executor.execute_insert(sql, {"user_name": "alice", "password": "a"})
    second = await executor.execute_insert(sql, {"user_name": "bob", "password": "b"})
    assert first == 1
    assert second == 2
    name = await executor.execute_scalar(
        "SELECT user_name FROM base_user WHERE id = ?", (second,)
    )
    assert name == "bob"


@pytest.mark.asyncio
async def test_borrowed_connection_is_opened_but_not_closed(executor):
    from credcheck.db.connection import create_connection

    conn = create_connection(executor.database_url)
    assert conn.is_open is False
    try:
        await executor.execute_non_query("DELETE FROM base_user", connection=conn)
        assert conn.is_open is True
        assert await executor.execute_scalar("SELECT 1", connection=conn) == 1
    finally:
        await conn.close()


@pytest.mark.asyncio
async def test_transaction_commits(executor):
    async with executor.transaction() as tx:
        await executor.execute_insert(
            "INSERT INTO base_user (user_name, password) VALUES (?, ?)",
            ("alice", "a"),
            transaction=tx,
        )
        assert tx.connection.is_open is True
    assert tx.connection.is_open is False
    assert await executor.execute_scalar("SELECT COUNT(*) FROM base_user") == 1


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(executor):
    with pytest.raises(RuntimeError, match="boom"):
        async with executor.transaction() as tx:
            await executor.execute_non_query(
                "INSERT INTO base_user (user_name, password) VALUES (?, ?)",
                ("alice", "a"),
                transaction=tx,
            )
            raise RuntimeError("boom")
    assert await executor.execute_scalar("SELECT COUNT(*) FROM base_user") == 0


@pytest.mark.asyncio
async def test_connection_and_transaction_together_rejected(executor):
    async with executor.transaction() as tx:
        with pytest.raises(ValueError, match="either connection or transaction"):
            await executor.execute_scalar("SELECT 1", connection=tx.connection, transaction=tx)


@pytest.mark.asyncio
async def test_stored_procedure_unsupported_on_sqlite(executor, created_connections):
    with pytest.raises(sqlite3.NotSupportedError, match="stored procedures"):
        await executor.execute_non_query(
            "publish_orders", {"prodid": 24}, kind=CommandKind.STORED_PROCEDURE
        )
    assert created_connections[0].is_open is False


@pytest.mark.asyncio
async def test_empty_url_fails_on_first_use():
    from credcheck.executor import CommandExecutor

    executor = CommandExecutor("")
    with pytest.raises(ValueError, match="No database URL"):
        await executor.execute_scalar("SELECT 1")
