"""
Credential providers for outbound services.

Clients receive a provider instance instead of reading a module-level
token, so each client owns the lifetime of the credentials it uses.
"""

from abc import ABC, abstractmethod
from typing import Optional


class CredentialProvider(ABC):
    """Supplies the token used to authenticate an outbound call."""

    @abstractmethod
    def get_token(self) -> Optional[str]:
        """Return the current token, or None when the call is unauthenticated."""
        ...


class StaticCredentials(CredentialProvider):
    """A fixed token, typically read from settings at startup."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get_token(self) -> Optional[str]:
        return self._token

    def __repr__(self) -> str:
        return f"StaticCredentials(configured={self._token is not None})"
