"""Credential verifier protocol."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class CredentialVerifier(Protocol):
    """Protocol for anything that can check a username/password pair."""

    async def is_login_success(self, username: str, password: str) -> bool:
        """Return True if the credentials match a known user."""
        ...
