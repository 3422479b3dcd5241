"""Wire configuration, logging and the credential verifier together."""

import logging
import sys

from credcheck.auth.user_info import UserInfo
from credcheck.config import get_database_url, get_log_level
from credcheck.executor import CommandExecutor


def configure_logging(level: str | None = None) -> None:
    """Send log records to stderr at ``level`` (default: CREDCHECK_LOG_LEVEL).

    Raises ValueError for a name the logging module does not know.
    """
    name = (level or get_log_level()).upper()
    levels = logging.getLevelNamesMapping()
    if name not in levels:
        raise ValueError(f"Unknown log level {name!r}; expected one of {sorted(levels)}")
    logging.basicConfig(
        level=levels[name],
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def create_user_info(database_url: str | None = None) -> UserInfo:
    """Build a UserInfo for ``database_url`` (default: CREDCHECK_DATABASE_URL)."""
    url = database_url if database_url is not None else get_database_url()
    return UserInfo(CommandExecutor(url))
