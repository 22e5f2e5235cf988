"""
Auth service factory.
"""
from typing import Optional

from .base import AuthServiceInterface
from .static_auth import StaticTokenAuthService
from ...core import config
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class AuthServiceFactory:
    """Factory for creating auth services: static tokens or Supabase Auth."""

    @staticmethod
    def create(auth_type: Optional[str] = None) -> AuthServiceInterface:
        auth_type = (auth_type or config.AUTH_TYPE).lower()
        logger.info(f"Creating auth service: {auth_type}")

        if auth_type == "static":
            return StaticTokenAuthService()
        elif auth_type == "supabase":
            from .supabase_auth import SupabaseAuthService

            if not config.SUPABASE_URL or not config.SUPABASE_KEY:
                raise ValueError("Supabase URL and key are required for supabase auth")
            return SupabaseAuthService(config.SUPABASE_URL, config.SUPABASE_KEY)
        else:
            raise ValueError(
                f"Unsupported auth type: {auth_type}. "
                f"Supported types: 'static', 'supabase'"
            )
