"""
Supabase Auth session lookup.
"""
import asyncio
from typing import Optional

from supabase import Client, create_client

from .base import AuthServiceInterface
from ...api.exceptions import AuthError
from ...core.logging_config import get_logger
from ...domain.entities import AuthenticatedUser
from ...domain.value_objects import UserId

logger = get_logger(__name__)


class SupabaseAuthService(AuthServiceInterface):
    """Validates access tokens against Supabase Auth."""

    def __init__(self, supabase_url: str, supabase_key: str, client: Optional[Client] = None):
        self.supabase: Client = client or create_client(supabase_url, supabase_key)

    async def get_user(self, token: Optional[str]) -> AuthenticatedUser:
        if not token:
            raise AuthError("User not authenticated", stage="auth")

        loop = asyncio.get_event_loop()
        try:
            response = await loop.run_in_executor(None, lambda: self.supabase.auth.get_user(token))
        except Exception as e:
            logger.warning(f"Supabase session lookup failed: {e}")
            raise AuthError("User not authenticated", stage="auth") from e

        user = getattr(response, "user", None)
        if user is None:
            raise AuthError("User not authenticated", stage="auth")
        return AuthenticatedUser(id=UserId(user.id), email=getattr(user, "email", None))
