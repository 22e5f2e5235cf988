"""
Abstract base class for auth services.
"""
from abc import ABC, abstractmethod
from typing import Optional

from ...domain.entities import AuthenticatedUser


class AuthServiceInterface(ABC):
    """Resolves the acting user from a session token."""

    @abstractmethod
    async def get_user(self, token: Optional[str]) -> AuthenticatedUser:
        """
        Resolve a token to a user.

        Raises:
            AuthError: if the token is missing or not a valid session
        """
        pass
