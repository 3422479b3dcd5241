"""Credential verification."""

from credcheck.auth.provider import CredentialVerifier
from credcheck.auth.user_info import UserInfo

__all__ = ["CredentialVerifier", "UserInfo"]
