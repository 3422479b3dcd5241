"""Login check against the ``base_user`` table."""

import logging

from credcheck.executor import CommandExecutor
from credcheck.models.credentials import Credentials

logger = logging.getLogger(__name__)

# Values are always bound, never formatted into the SQL text
LOGIN_SQL = (
    "SELECT COUNT(*) FROM base_user WHERE user_name = :user_name AND password = :password"
)


class UserInfo:
    """Checks credentials against ``base_user`` through a CommandExecutor."""

    def __init__(self, executor: CommandExecutor):
        """Initialize with the executor that reaches the user database."""
        self.executor = executor

    async def is_login_success(self, username: str, password: str) -> bool:
        """Return True if a ``base_user`` row has exactly this name and password."""
        return await self.verify(Credentials(username=username, password=password))

    async def verify(self, credentials: Credentials) -> bool:
        """Return True if ``credentials`` match at least one user row."""
        count = await self.executor.execute_scalar(
            LOGIN_SQL,
            {"user_name": credentials.username, "password": credentials.password},
        )
        success = int(count or 0) > 0
        logger.info(
            "Login %s for user %r", "succeeded" if success else "failed", credentials.username
        )
        return success
