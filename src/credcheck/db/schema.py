"""DDL for the user table the credential check reads."""

from credcheck.db.backend import Connection
from credcheck.executor import CommandExecutor

SCHEMA_SQL = {
    "sqlite": """
        CREATE TABLE IF NOT EXISTS base_user (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_name TEXT NOT NULL,
            password TEXT NOT NULL
        )
    """,
    "postgresql": """
        CREATE TABLE IF NOT EXISTS base_user (
            id SERIAL PRIMARY KEY,
            user_name TEXT NOT NULL,
            password TEXT NOT NULL
        )
    """,
}


async def apply_schema(target: Connection | CommandExecutor) -> None:
    """Create ``base_user`` if it does not exist.

    Accepts a connection (opened if needed, left open) or an executor,
    which runs the DDL on a connection of its own and closes it.
    """
    if isinstance(target, CommandExecutor):
        async with target.connect() as conn:
            await target.execute_non_query(SCHEMA_SQL[conn.dialect], connection=conn)
        return
    if not target.is_open:
        await target.open()
    cursor = await target.execute(SCHEMA_SQL[target.dialect])
    await cursor.close()
