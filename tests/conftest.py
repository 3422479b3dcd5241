"""Shared test fixtures."""

import pytest
import pytest_asyncio

from credcheck.auth.user_info import UserInfo
from credcheck.db.connection import create_connection
from credcheck.db.schema import apply_schema
from credcheck.executor import CommandExecutor


@pytest.fixture
def db_url(tmp_path):
    """Path to a fresh SQLite file. Each command opens its own connection."""
    return str(tmp_path / "users.db")


@pytest_asyncio.fixture
async def executor(db_url):
    """Executor over a database with the base_user table created."""
    conn = create_connection(db_url)
    await apply_schema(conn)
    await conn.close()
    return CommandExecutor(db_url)


@pytest_asyncio.fixture
async def user_info(executor):
    """Credential verifier backed by the test database."""
    return UserInfo(executor)


@pytest.fixture
def add_user(executor):
    """Insert a base_user row and return its generated id."""

    async def _add(user_name: str, password: str) -> int:
        return await executor.execute_insert(
            "INSERT INTO base_user (user_name, password) VALUES (?, ?)",
            (user_name, password),
        )

    return _add


@pytest.fixture
def created_connections(monkeypatch):
    """Record every connection the executor creates for itself."""
    created = []

    def _create(url):
        conn = create_connection(url)
        created.append(conn)
        return conn

    monkeypatch.setattr("credcheck.executor.create_connection", _create)
    return created
