"""
Abstract base class for object storage adapters.
All storage implementations must inherit from this class.
"""
from abc import ABC, abstractmethod
from typing import Optional


class ObjectStorageInterface(ABC):
    """
    Abstract interface for bucketed object storage.
    The pipeline only needs put, public URL lookup and (for validation) get.
    Uploads never overwrite: storing to an existing path is an error.
    """

    @abstractmethod
    async def upload(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """
        Store bytes under bucket/path.

        Args:
            bucket: Bucket name
            path: Object path inside the bucket
            data: Raw object bytes
            content_type: MIME type stored with the object

        Returns:
            The storage path the object was saved under

        Raises:
            FileExistsError: if an object already exists at the path
        """
        pass

    @abstractmethod
    async def get_public_url(self, bucket: str, path: str) -> str:
        """Return a publicly resolvable URL for the object."""
        pass

    @abstractmethod
    async def download(self, bucket: str, path: str) -> bytes:
        """
        Retrieve an object's bytes.

        Raises:
            FileNotFoundError: if the object does not exist
        """
        pass

    @abstractmethod
    async def delete(self, bucket: str, path: str) -> bool:
        """Delete an object. Returns False if it was not found."""
        pass

    @abstractmethod
    async def exists(self, bucket: str, path: str) -> bool:
        """Check whether an object exists."""
        pass

    @abstractmethod
    async def initialize(self):
        """Initialize storage (create directories, verify buckets, etc.)."""
        pass

    @abstractmethod
    async def close(self):
        """Close storage connection (cleanup, close clients, etc.)."""
        pass
