"""
In-memory adapter implementing DatabaseInterface.
Perfect for demos and testing - stores all rows in Python dicts.
Data is lost on restart.
"""
import copy
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import DatabaseInterface
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class MemoryAdapter(DatabaseInterface):
    """
    In-memory database adapter.
    Rows are deep-copied on the way in and out so callers never share state.
    """

    def __init__(self):
        # table name -> {row id -> row}
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def initialize(self):
        """Initialize database (clears any existing data)."""
        self._tables.clear()

    async def close(self):
        """Close database connection (no-op for in-memory)."""
        pass

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._tables.setdefault(table, {})

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stored = copy.deepcopy(row)
        row_id = stored.get("id") or str(uuid.uuid4())
        if row_id in self._table(table):
            raise ValueError(f"Duplicate id '{row_id}' in table '{table}'")
        stored["id"] = row_id

        now = datetime.now().isoformat()
        stored.setdefault("created_at", now)
        stored.setdefault("updated_at", now)

        self._table(table)[row_id] = stored
        return copy.deepcopy(stored)

    async def update(self, table: str, row_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = self._table(table).get(row_id)
        if row is None:
            return None

        row.update(copy.deepcopy(patch))
        row["updated_at"] = datetime.now().isoformat()
        return copy.deepcopy(row)

    async def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        row = self._table(table).get(row_id)
        return copy.deepcopy(row) if row else None

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        filters = filters or {}
        rows = [
            copy.deepcopy(row)
            for row in self._table(table).values()
            if all(row.get(key) == value for key, value in filters.items())
        ]
        return rows[:limit] if limit is not None else rows
