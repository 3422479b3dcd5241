"""Environment-variable-based configuration."""

import os


def get_database_url() -> str:
    """Return the database connection URL from CREDCHECK_DATABASE_URL.

    Unset means empty: the executor still constructs, and the first
    command fails when it tries to connect.
    """
    return os.environ.get("CREDCHECK_DATABASE_URL", "")


def get_log_level() -> str:
    """Return the logging level from CREDCHECK_LOG_LEVEL."""
    return os.environ.get("CREDCHECK_LOG_LEVEL", "WARNING").upper()
