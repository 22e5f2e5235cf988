"""
Abstract base class for database adapters.
All database implementations must inherit from this class.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class DatabaseInterface(ABC):
    """
    Abstract interface for row-oriented table access.
    The pipeline reads and writes two tables: processing jobs and
    knowledge entries. Rows are plain dicts keyed by column name.
    """

    @abstractmethod
    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it with its assigned `id`."""
        pass

    @abstractmethod
    async def update(self, table: str, row_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply a partial update. Returns the updated row, or None if not found."""
        pass

    @abstractmethod
    async def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        """Get a row by id."""
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Return rows whose columns equal every value in `filters`."""
        pass

    @abstractmethod
    async def initialize(self):
        """Initialize database (create tables, verify connection, etc.)."""
        pass

    @abstractmethod
    async def close(self):
        """Close database connection."""
        pass
