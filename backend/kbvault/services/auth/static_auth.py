"""
Static token auth for development and tests.
"""
from typing import Dict, Optional

from .base import AuthServiceInterface
from ...api.exceptions import AuthError
from ...core.config import STATIC_AUTH_TOKENS
from ...domain.entities import AuthenticatedUser
from ...domain.value_objects import UserId


def parse_static_tokens(raw: str) -> Dict[str, AuthenticatedUser]:
    """Parse `token:user_id[:email]` entries separated by commas."""
    users = {}
    for item in raw.split(","):
        parts = [p.strip() for p in item.strip().split(":")]
        if len(parts) < 2 or not parts[0] or not parts[1]:
            continue
        email = parts[2] if len(parts) > 2 and parts[2] else None
        users[parts[0]] = AuthenticatedUser(id=UserId(parts[1]), email=email)
    return users


class StaticTokenAuthService(AuthServiceInterface):
    """Looks tokens up in a fixed token -> user map."""

    def __init__(self, users: Optional[Dict[str, AuthenticatedUser]] = None):
        self.users = users if users is not None else parse_static_tokens(STATIC_AUTH_TOKENS)

    async def get_user(self, token: Optional[str]) -> AuthenticatedUser:
        user = self.users.get(token) if token else None
        if user is None:
            raise AuthError("User not authenticated", stage="auth")
        return user
