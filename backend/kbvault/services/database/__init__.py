"""
Database abstraction layer for plug-and-play database support.
"""
from .base import DatabaseInterface
from .memory_adapter import MemoryAdapter
from .factory import DatabaseFactory

__all__ = ["DatabaseInterface", "MemoryAdapter", "DatabaseFactory"]
