"""
Supabase (PostgREST) adapter implementing DatabaseInterface.
"""
import asyncio
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from .base import DatabaseInterface
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class SupabaseAdapter(DatabaseInterface):
    """Database adapter backed by Supabase tables."""

    def __init__(self, supabase_url: str, supabase_key: str, client: Optional[Client] = None):
        self.supabase: Client = client or create_client(supabase_url, supabase_key)

    async def initialize(self):
        """Tables are managed by Supabase migrations."""
        pass

    async def close(self):
        """Close database connection (no-op for Supabase)."""
        pass

    async def _run(self, fn):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, fn)

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._run(lambda: self.supabase.table(table).insert(row).execute())
        if not response.data:
            raise RuntimeError(f"Insert into {table} returned no rows")
        return response.data[0]

    async def update(self, table: str, row_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        response = await self._run(
            lambda: self.supabase.table(table).update(patch).eq("id", row_id).execute()
        )
        return response.data[0] if response.data else None

    async def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        response = await self._run(
            lambda: self.supabase.table(table).select("*").eq("id", row_id).limit(1).execute()
        )
        return response.data[0] if response.data else None

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        def _select():
            query = self.supabase.table(table).select("*")
            for key, value in (filters or {}).items():
                query = query.eq(key, value)
            if limit is not None:
                query = query.limit(limit)
            return query.execute()

        response = await self._run(_select)
        return response.data or []
