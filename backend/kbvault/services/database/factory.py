"""
Database Factory for creating database adapters.
Implements Factory Pattern for plug-and-play database support.
"""
from typing import Optional

from .base import DatabaseInterface
from .memory_adapter import MemoryAdapter
from ...core import config
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class DatabaseFactory:
    """Factory for creating database adapters: in-memory or Supabase."""

    @staticmethod
    def create(db_type: Optional[str] = None, **kwargs) -> DatabaseInterface:
        """
        Create a database adapter instance.

        Args:
            db_type: 'memory', 'supabase', or None to read DATABASE_TYPE
            **kwargs: Additional arguments for specific adapters
        """
        db_type = (db_type or config.DATABASE_TYPE).lower()
        logger.info(f"Creating database adapter: {db_type}")

        if db_type == "memory":
            return MemoryAdapter()
        elif db_type == "supabase":
            from .supabase_adapter import SupabaseAdapter

            supabase_url = kwargs.get("supabase_url", config.SUPABASE_URL)
            supabase_key = kwargs.get("supabase_key", config.SUPABASE_KEY)
            if not supabase_url or not supabase_key:
                raise ValueError("Supabase URL and key are required for the supabase database")
            return SupabaseAdapter(supabase_url=supabase_url, supabase_key=supabase_key)
        else:
            raise ValueError(
                f"Unsupported database type: {db_type}. "
                f"Supported types: 'memory', 'supabase'"
            )

    @staticmethod
    async def create_and_initialize(db_type: Optional[str] = None, **kwargs) -> DatabaseInterface:
        """Create database adapter and initialize it."""
        db = DatabaseFactory.create(db_type, **kwargs)
        await db.initialize()
        return db
